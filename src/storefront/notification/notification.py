"""Notification aggregate: one outbound message and its delivery history.

State machine:
    PENDING -> SENT
    PENDING -> FAILED -> (retry) -> PENDING

A failed notification that has used all of its attempts is a dead letter. It
stays in the store as ``FAILED`` until it is retried with extra attempts.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text

from storefront.domain import storefront
from storefront.notification.events import NotificationFailed, NotificationRetried, NotificationSent


class NotificationStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.FAILED: {NotificationStatus.PENDING},
    NotificationStatus.SENT: set(),
}


@storefront.aggregate
class Notification:
    notification_type = String(required=True, max_length=100)
    recipient = String(required=True, max_length=254)
    reference = String(max_length=100)

    subject = String(max_length=500)
    body = Text(required=True)
    html_body = Text()

    status = String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    attempts = Integer(default=0, min_value=0)
    max_attempts = Integer(default=3, min_value=1)
    failure_reason = String(max_length=500)
    message_id = String(max_length=255)

    sent_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, notification_type, recipient, content, reference=None, max_attempts=3):
        """``content`` is a rendered template: subject, body and optional html_body."""
        now = datetime.now(UTC)
        return cls(
            notification_type=notification_type,
            recipient=recipient,
            reference=reference,
            subject=content["subject"],
            body=content["body"],
            html_body=content.get("html_body"),
            max_attempts=max(1, int(max_attempts)),
            created_at=now,
            updated_at=now,
        )

    @property
    def can_retry(self) -> bool:
        return self.status == NotificationStatus.FAILED.value and self.attempts < self.max_attempts

    @property
    def is_dead_lettered(self) -> bool:
        return self.status == NotificationStatus.FAILED.value and self.attempts >= self.max_attempts

    def _assert_can_transition(self, target):
        current = NotificationStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot move a notification from {current.value} to {target.value}"]})

    def mark_sent(self, message_id=None):
        self._assert_can_transition(NotificationStatus.SENT)

        now = datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.attempts = self.attempts + 1
        self.message_id = message_id
        self.failure_reason = None
        self.sent_at = now
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                notification_type=self.notification_type,
                reference=self.reference,
                message_id=message_id,
                attempts=self.attempts,
                sent_at=now,
            )
        )

    def mark_failed(self, reason):
        self._assert_can_transition(NotificationStatus.FAILED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.FAILED.value
        self.attempts = self.attempts + 1
        self.failure_reason = (reason or "Unknown dispatch error")[:500]
        self.updated_at = now

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                notification_type=self.notification_type,
                reference=self.reference,
                reason=self.failure_reason,
                attempts=self.attempts,
                max_attempts=self.max_attempts,
                failed_at=now,
            )
        )

    def retry(self, additional_attempts=0):
        """Put a failed notification back to pending.

        ``additional_attempts`` raises the attempt budget, which is how a dead
        letter is given another chance.
        """
        if self.status != NotificationStatus.FAILED.value:
            raise ValidationError({"status": ["Only failed notifications can be retried"]})

        max_attempts = self.max_attempts + max(0, int(additional_attempts or 0))
        if self.attempts >= max_attempts:
            raise ValidationError({"attempts": ["Maximum delivery attempts exceeded"]})

        now = datetime.now(UTC)
        self.max_attempts = max_attempts
        self.status = NotificationStatus.PENDING.value
        self.updated_at = now

        self.raise_(
            NotificationRetried(
                notification_id=str(self.id),
                attempts=self.attempts,
                max_attempts=self.max_attempts,
                retried_at=now,
            )
        )


@storefront.repository(part_of=Notification)
class NotificationRepository:
    def dead_letters(self) -> list[Notification]:
        failed = self._dao.query.filter(status=NotificationStatus.FAILED.value).all().items
        return [notification for notification in failed if notification.is_dead_lettered]

    def for_reference(self, reference) -> list[Notification]:
        return list(self._dao.query.filter(reference=reference).order_by("created_at").all().items)
