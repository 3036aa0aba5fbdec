"""Notification templates, keyed by notification type.

A template is a class with a ``notification_type`` string and a static
``render(context) -> {subject, body, html_body}``.
"""

from notifications.templates.order_confirmation import OrderConfirmationTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    template.notification_type: template for template in (OrderConfirmationTemplate,)
}


def get_template(notification_type: str):
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls


def render(notification_type: str, context: dict) -> dict:
    """Render ``context`` with the template for ``notification_type``."""
    content = get_template(notification_type).render(context)
    missing = {"subject", "body"} - set(content)
    if missing:
        raise ValueError(f"Template {notification_type} did not render {sorted(missing)}")
    return content
