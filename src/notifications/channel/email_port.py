"""Email channel port: abstract interface for email dispatch."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class DeliveryReceipt:
    """Outcome of one send attempt."""

    delivered: bool
    message_id: str | None = None
    error: str | None = None


class EmailPort(ABC):
    """Abstract interface for email dispatch adapters."""

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> DeliveryReceipt:
        """Send one email. Adapters report delivery failures in the receipt."""
        ...
