"""Last-known device location, fed by a location provider."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from fruit_catalog.domain.attachments import LocationSample

_logger = logging.getLogger(__name__)

LocationCallback = Callable[[LocationSample], None]


class LocationProvider(Protocol):
    """Platform source of position updates."""

    def request_permission(self) -> bool:
        """Ask for foreground location access and return whether it was granted."""

    def start_updates(self, on_sample: LocationCallback) -> None:
        """Begin continuous best-accuracy updates, delivered to on_sample."""

    def stop_updates(self) -> None:
        """Stop delivering updates."""


@dataclass
class LocationObserver:
    """Single-slot register holding the most recent location sample.

    One producer (the provider) overwrites the slot; any number of readers may
    poll ``latest`` or subscribe for change notifications.
    """

    provider: LocationProvider
    _latest: LocationSample | None = None
    _subscribers: list[LocationCallback] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _running: bool = False

    @property
    def latest(self) -> LocationSample | None:
        """Return the most recent sample, or None if nothing was observed."""
        with self._lock:
            return self._latest

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Request permission and begin observing the provider."""
        if self._running:
            return
        if not self.provider.request_permission():
            _logger.info("Location permission denied; captures will have no location")
            return
        self.provider.start_updates(self.publish)
        self._running = True

    def stop(self) -> None:
        """Stop observing the provider. The last sample is kept."""
        if not self._running:
            return
        self.provider.stop_updates()
        self._running = False

    def publish(self, sample: LocationSample) -> None:
        """Overwrite the slot with a new sample and notify subscribers."""
        with self._lock:
            self._latest = sample
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(sample)
            except Exception:
                _logger.exception("Location subscriber failed")

    def subscribe(self, callback: LocationCallback) -> Callable[[], None]:
        """Register a callback for new samples and return an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe


@dataclass
class ManualLocationProvider(LocationProvider):
    """Provider fed by explicit pushes, e.g. a client device posting its position."""

    enabled: bool = True
    _on_sample: LocationCallback | None = None

    def request_permission(self) -> bool:
        return self.enabled

    def start_updates(self, on_sample: LocationCallback) -> None:
        self._on_sample = on_sample

    def stop_updates(self) -> None:
        self._on_sample = None

    def push(self, sample: LocationSample) -> bool:
        """Deliver a sample if updates are active; return whether it was delivered."""
        if self._on_sample is None:
            return False
        self._on_sample(sample)
        return True
