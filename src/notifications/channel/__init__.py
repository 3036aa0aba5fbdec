"""Email channel registry.

The fake adapter is the default; a real SMTP or provider adapter is installed
with ``set_email_channel`` at application start-up.
"""

from notifications.channel.email_port import EmailPort

_email_channel: EmailPort | None = None


def get_email_channel() -> EmailPort:
    global _email_channel
    if _email_channel is None:
        from notifications.channel.fake_email import FakeEmailAdapter

        _email_channel = FakeEmailAdapter()
    return _email_channel


def set_email_channel(channel: EmailPort) -> None:
    global _email_channel
    _email_channel = channel


def reset_channels():
    """Drop the configured adapter (useful for testing)."""
    global _email_channel
    _email_channel = None
