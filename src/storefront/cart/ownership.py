"""Resolve which cart a command addresses."""

from protean.exceptions import ValidationError

from storefront.cart.cart import CartOwner


def owner_from(command) -> CartOwner:
    """An authenticated user wins over a session id when both are present."""
    if command.user_id:
        return CartOwner.user(command.user_id)
    if command.session_id:
        return CartOwner.session(command.session_id)
    raise ValidationError({"session_id": ["A session id or an authenticated user is required"]})
