"""Location samples and the in-process feed that distributes them."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..utils import parse_iso

logger = logging.getLogger(__name__)

LocationCallback = Callable[["LocationSample"], object]


@dataclass(frozen=True)
class LocationSample:
    """One position fix from the device."""

    latitude: float
    longitude: float
    accuracy: float | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: dict) -> LocationSample:
        accuracy = data.get("accuracy")
        raw_ts = data.get("timestamp")
        if isinstance(raw_ts, (int, float)):
            # Browser geolocation reports epoch milliseconds.
            timestamp = datetime.fromtimestamp(raw_ts / 1000.0)
        else:
            timestamp = parse_iso(raw_ts) or datetime.now()
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            accuracy=float(accuracy) if accuracy is not None else None,
            timestamp=timestamp,
        )


class Subscription:
    """Handle returned by :meth:`LocationFeed.subscribe`."""

    def __init__(self, feed: LocationFeed, callback: LocationCallback):
        self._feed = feed
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self._callback)


class LocationFeed:
    """Publish position samples to subscribers, in subscription order."""

    def __init__(self):
        self._subscribers: list[LocationCallback] = []
        self.latest: LocationSample | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: LocationCallback) -> Subscription:
        self._subscribers.append(callback)
        return Subscription(self, callback)

    def publish(self, sample: LocationSample) -> None:
        self.latest = sample
        for callback in list(self._subscribers):
            try:
                callback(sample)
            except Exception:
                logger.exception("Location subscriber %r failed", callback)

    def _remove(self, callback: LocationCallback) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass
