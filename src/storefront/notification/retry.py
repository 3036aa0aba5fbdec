"""RetryNotification command and handler: give a failed notification another go."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.notification.dispatch import dispatch
from storefront.notification.notification import Notification

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Notification")
class RetryNotification:
    notification_id = Identifier(required=True)
    additional_attempts = Integer(default=1, min_value=0)


@storefront.command_handler(part_of=Notification)
class RetryNotificationHandler:
    @handle(RetryNotification)
    def retry_notification(self, command):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.retry(additional_attempts=command.additional_attempts)
        repo.add(notification)

        logger.info(
            "Notification retry requested",
            notification_id=str(notification.id),
            attempts=notification.attempts,
            max_attempts=notification.max_attempts,
        )
        return dispatch(notification)
