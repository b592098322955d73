"""Telegram Bot API channel."""

from __future__ import annotations

import html
import logging

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT_SECONDS = 10.0


class TelegramChannel:
    """Send messages with the Bot API ``sendMessage`` method."""

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        api_url: str = TELEGRAM_API_URL,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/bot{self.bot_token}/sendMessage"

    async def send(self, subject: str, message: str) -> bool:
        if not self.bot_token or not self.chat_id:
            logger.warning("Telegram message not sent - bot token or chat id missing")
            return False

        payload = {
            "chat_id": self.chat_id,
            "text": f"<b>{html.escape(subject)}</b>\n{html.escape(message)}",
            "parse_mode": "HTML",
        }
        try:
            if self._client is not None:
                response = await self._client.post(self.endpoint, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as exc:
            # The endpoint embeds the token; log the exception type only.
            logger.warning("Telegram request failed: %s", type(exc).__name__)
            return False

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400 or not data.get("ok"):
            logger.warning(
                "Telegram rejected message (HTTP %s): %s",
                response.status_code,
                data.get("description", "no description"),
            )
            return False
        return True
