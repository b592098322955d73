"""Tests for notification channels and the dispatcher."""

import json
import smtplib
from unittest.mock import MagicMock, patch

import httpx
import pytest

from patrolwatch.core.settings import PatrolSettings, SmtpSettings
from patrolwatch.notify import (
    EmailChannel,
    NotificationDispatcher,
    NotificationKind,
    TelegramChannel,
)


def _telegram(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramChannel("123:abc", "42", client=client), client


class TestTelegramChannel:
    """Test TelegramChannel."""

    @pytest.mark.asyncio
    async def test_send_posts_html_message(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "result": {}})

        channel, client = _telegram(handler)
        async with client:
            assert await channel.send("Checkpoint missed", "Gate <north> & dock") is True

        request = requests[0]
        assert request.url.path == "/bot123:abc/sendMessage"
        body = json.loads(request.content)
        assert body["chat_id"] == "42"
        assert body["parse_mode"] == "HTML"
        assert body["text"] == "<b>Checkpoint missed</b>\nGate &lt;north&gt; &amp; dock"

    @pytest.mark.asyncio
    async def test_api_error_returns_false(self):
        channel, client = _telegram(
            lambda request: httpx.Response(400, json={"ok": False, "description": "chat not found"})
        )
        async with client:
            assert await channel.send("s", "m") is False

    @pytest.mark.asyncio
    async def test_network_error_returns_false(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        channel, client = _telegram(handler)
        async with client:
            assert await channel.send("s", "m") is False

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        assert await TelegramChannel("", "42").send("s", "m") is False


class TestEmailChannel:
    """Test EmailChannel."""

    SMTP = SmtpSettings(
        host="smtp.example.com",
        port=465,
        username="guard@example.com",
        password="secret",
        sender="patrol@example.com",
    )

    def test_build_message(self):
        msg = EmailChannel(self.SMTP, "boss@example.com").build_message("Patrol report", "All good")

        assert msg["Subject"] == "Patrol: Patrol report"
        assert msg["From"] == "patrol@example.com"
        assert msg["To"] == "boss@example.com"

    @pytest.mark.asyncio
    async def test_send_over_ssl(self):
        server = MagicMock()
        server.__enter__.return_value = server
        with patch("patrolwatch.notify.email.smtplib.SMTP_SSL", return_value=server) as smtp_ssl:
            assert await EmailChannel(self.SMTP, "boss@example.com").send("s", "m") is True

        smtp_ssl.assert_called_once()
        server.login.assert_called_once_with("guard@example.com", "secret")
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_with_starttls(self):
        smtp = SmtpSettings(host="smtp.example.com", port=587, username="u", password="p", use_ssl=False)
        server = MagicMock()
        server.__enter__.return_value = server
        with patch("patrolwatch.notify.email.smtplib.SMTP", return_value=server):
            assert await EmailChannel(smtp, "boss@example.com").send("s", "m") is True

        names = [name for name, _, _ in server.mock_calls]
        assert names.index("__enter__") < names.index("starttls") < names.index("login")

    @pytest.mark.asyncio
    async def test_starttls_failure_closes_connection(self):
        smtp = SmtpSettings(host="smtp.example.com", port=587, username="u", password="p", use_ssl=False)
        server = MagicMock()
        server.__enter__.return_value = server
        server.starttls.side_effect = smtplib.SMTPNotSupportedError("STARTTLS extension not supported")
        with patch("patrolwatch.notify.email.smtplib.SMTP", return_value=server):
            assert await EmailChannel(smtp, "boss@example.com").send("s", "m") is False

        server.__exit__.assert_called_once()
        server.login.assert_not_called()

    @pytest.mark.asyncio
    async def test_smtp_error_returns_false(self):
        server = MagicMock()
        server.__enter__.return_value = server
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        with patch("patrolwatch.notify.email.smtplib.SMTP_SSL", return_value=server):
            assert await EmailChannel(self.SMTP, "boss@example.com").send("s", "m") is False

    @pytest.mark.asyncio
    async def test_unconfigured_is_not_sent(self):
        with patch("patrolwatch.notify.email.smtplib.SMTP_SSL") as smtp_ssl:
            assert await EmailChannel(SmtpSettings(), "boss@example.com").send("s", "m") is False

        smtp_ssl.assert_not_called()


class FakeChannel:
    def __init__(self, name, outcome):
        self.name = name
        self.outcome = outcome
        self.sent = []

    async def send(self, subject, message):
        self.sent.append((subject, message))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class TestNotificationDispatcher:
    """Test NotificationDispatcher."""

    @pytest.mark.asyncio
    async def test_fans_out_with_subject(self):
        telegram = FakeChannel("telegram", True)
        email = FakeChannel("email", True)
        dispatcher = NotificationDispatcher([telegram, email])

        result = await dispatcher.dispatch(NotificationKind.MISSED_POINT, "Gate late")

        assert result.delivered is True
        assert result.channels == {"telegram": True, "email": True}
        assert telegram.sent == [("Checkpoint missed", "Gate late")]

    @pytest.mark.asyncio
    async def test_partial_failure_still_delivered(self):
        dispatcher = NotificationDispatcher([
            FakeChannel("telegram", RuntimeError("boom")),
            FakeChannel("email", True),
        ])

        result = await dispatcher.dispatch(NotificationKind.PATROL_STARTED, "go")

        assert result.delivered is True
        assert result.channels == {"telegram": False, "email": True}
        assert "telegram: boom" in result.error

    @pytest.mark.asyncio
    async def test_all_failed(self):
        dispatcher = NotificationDispatcher([FakeChannel("email", False)])

        result = await dispatcher.dispatch(NotificationKind.PATROL_COMPLETED, "report")

        assert result.delivered is False
        assert result.error is None

    @pytest.mark.asyncio
    async def test_disabled_and_unconfigured(self):
        channel = FakeChannel("email", True)

        disabled = await NotificationDispatcher([channel], enabled=False).dispatch(
            NotificationKind.PATROL_STARTED, "go"
        )
        empty = await NotificationDispatcher().dispatch(NotificationKind.PATROL_STARTED, "go")

        assert disabled.error == "notifications disabled"
        assert channel.sent == []
        assert empty.error == "no channel configured"

    def test_from_settings_builds_configured_channels(self):
        settings = PatrolSettings(
            telegram_bot_token="123:abc",
            telegram_chat_id="42",
            notification_email="boss@example.com",
            smtp=SmtpSettings(host="smtp.example.com", username="u", password="p"),
        )

        dispatcher = NotificationDispatcher.from_settings(settings)

        assert [channel.name for channel in dispatcher.channels] == ["telegram", "email"]

    def test_from_settings_skips_incomplete_channels(self):
        settings = PatrolSettings(telegram_bot_token="123:abc", notification_email="boss@example.com")

        dispatcher = NotificationDispatcher.from_settings(settings)

        assert dispatcher.channels == []
