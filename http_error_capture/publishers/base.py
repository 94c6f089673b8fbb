"""Publisher interface shared by every event sink."""

from abc import ABC, abstractmethod
from typing import Sequence

from ..model import HttpErrorEvent


class ErrorEventPublisher(ABC):
    """Destination for captured events.

    Implementations are called from dispatcher threads, never from the
    request thread, and must not raise out of ``publish`` or
    ``publish_batch``: failures are logged and swallowed.
    """

    @abstractmethod
    def publish(self, event: HttpErrorEvent) -> None:
        """Send a single event."""

    @abstractmethod
    def publish_batch(self, events: Sequence[HttpErrorEvent]) -> None:
        """Send many events, chunked as the backend requires."""

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` if the destination is reachable."""
