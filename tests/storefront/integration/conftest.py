import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture()
def client():
    from storefront.api import cart_router, order_router, register_error_handlers

    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(order_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def auth_headers():
    """Headers carrying a freshly issued bearer token for ``user_id``."""
    from identity.tokens import get_verifier

    def _headers(user_id="user-001", **extra):
        return {"Authorization": f"Bearer {get_verifier().issue(user_id)}", **extra}

    return _headers
