"""Domain events for the Notification aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Notification")
class NotificationSent:
    __version__ = 1

    notification_id = Identifier(required=True)
    notification_type = String(required=True)
    reference = String()
    message_id = String()
    attempts = Integer(required=True)
    sent_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationFailed:
    """One delivery attempt failed. ``attempts`` counts every attempt so far."""

    __version__ = 1

    notification_id = Identifier(required=True)
    notification_type = String(required=True)
    reference = String()
    reason = String(required=True)
    attempts = Integer(required=True)
    max_attempts = Integer(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationRetried:
    __version__ = 1

    notification_id = Identifier(required=True)
    attempts = Integer(required=True)
    max_attempts = Integer(required=True)
    retried_at = DateTime(required=True)
