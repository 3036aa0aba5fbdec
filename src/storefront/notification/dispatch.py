"""Best-effort notification delivery with retry and dead-lettering.

Runs after the checkout has committed (as a FastAPI background task), so a
failure here never affects the order. Every notification is persisted before
the first attempt and after each one; a notification that fails all of its
attempts stays ``failed`` in the store as a dead letter.
"""

import structlog
from protean.utils.globals import current_domain

from notifications.channel import get_email_channel
from notifications.templates import render
from storefront.config import setting
from storefront.domain import storefront
from storefront.notification.notification import Notification

logger = structlog.get_logger(__name__)


def attempt(notification: Notification) -> bool:
    """Send once through the email channel and record the outcome on the notification."""
    try:
        receipt = get_email_channel().send(
            to=notification.recipient,
            subject=notification.subject or "",
            body=notification.body,
            html_body=notification.html_body,
        )
    except Exception as exc:
        notification.mark_failed(str(exc))
        return False

    if receipt.delivered:
        notification.mark_sent(receipt.message_id)
        return True

    notification.mark_failed(receipt.error)
    return False


def dispatch(notification: Notification) -> bool:
    """Attempt delivery until it succeeds or the attempt budget is spent."""
    repo = current_domain.repository_for(Notification)

    while True:
        sent = attempt(notification)
        repo.add(notification)

        if sent:
            logger.info(
                "Notification sent",
                notification_id=str(notification.id),
                notification_type=notification.notification_type,
                reference=notification.reference,
                message_id=notification.message_id,
                attempt=notification.attempts,
            )
            return True

        if not notification.can_retry:
            logger.error(
                "Notification dead-lettered",
                notification_id=str(notification.id),
                notification_type=notification.notification_type,
                reference=notification.reference,
                attempts=notification.attempts,
                error=notification.failure_reason,
            )
            return False

        logger.warning(
            "Notification attempt failed",
            notification_id=str(notification.id),
            reference=notification.reference,
            attempt=notification.attempts,
            max_attempts=notification.max_attempts,
            error=notification.failure_reason,
        )
        notification.retry()


def deliver(notification_type: str, recipient: str, context: dict, reference: str, max_attempts=None) -> Notification:
    """Render, persist and dispatch one notification. Raises ValueError for an unknown type."""
    content = render(notification_type, context)
    notification = Notification.create(
        notification_type=notification_type,
        recipient=recipient,
        content=content,
        reference=reference,
        max_attempts=max_attempts or setting("notification_max_attempts"),
    )
    current_domain.repository_for(Notification).add(notification)

    dispatch(notification)
    return notification


def send_order_confirmation(payload: dict, max_attempts=None) -> Notification:
    """Background-task entry point. Pushes its own domain context."""
    with storefront.domain_context():
        return deliver(
            "order_confirmation",
            recipient=payload["email"],
            context=payload,
            reference=payload.get("order_number", ""),
            max_attempts=max_attempts,
        )


def dead_letters() -> list[Notification]:
    return current_domain.repository_for(Notification).dead_letters()
