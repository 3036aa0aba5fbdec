import pytest


@pytest.fixture(autouse=True)
def _reset_channels():
    from notifications.channel import reset_channels

    reset_channels()
    yield
    reset_channels()
