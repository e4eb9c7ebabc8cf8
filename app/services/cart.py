# app/services/cart.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.database import DocumentStore, StoreError
from app.models.user import User

logger = logging.getLogger(__name__)

USERS = "users"


class CartUpdateError(Exception):
    kind = "operation_failed"


class InvalidCartPayload(CartUpdateError):
    kind = "invalid_payload"


class UserNotFound(CartUpdateError):
    kind = "user_not_found"


class StoreUnavailable(CartUpdateError):
    kind = "store_unavailable"


@dataclass
class CartUpdateResult:
    success: bool
    user: Optional[Dict[str, Any]] = None
    message: str = ""
    error: Optional[str] = None

    @classmethod
    def ok(cls, user: Dict[str, Any]) -> "CartUpdateResult":
        return cls(success=True, user=user)

    @classmethod
    def failed(cls, exc: Exception) -> "CartUpdateResult":
        kind = getattr(exc, "kind", CartUpdateError.kind)
        message = str(exc) or exc.__class__.__name__
        return cls(success=False, message=message, error=kind)


def _extract_cart_data(body: Any) -> Any:
    if not isinstance(body, dict):
        raise InvalidCartPayload("Request body must be a JSON object")
    if "cartData" not in body:
        raise InvalidCartPayload("cartData is required")
    return body["cartData"]


def _load_user(store: DocumentStore, user_id: Optional[str]) -> User:
    try:
        store.connect()
        doc = store.find_by_id(USERS, user_id)
    except StoreError as e:
        raise StoreUnavailable(str(e)) from e
    if doc is None:
        raise UserNotFound("User not found")
    return User.from_dict(doc)


def update_cart(store: DocumentStore, user_id: Optional[str], body: Any) -> CartUpdateResult:
    """
    Replace the stored cart of `user_id` with body["cartData"].

    The identity is resolved by the caller and passed in; an absent identity is
    not rejected here, it simply finds no user. The cart payload is stored as
    given (no shape checks) and overwrites the previous cart entirely.
    Concurrent updates for one user are not coordinated: the last save wins.
    """
    try:
        cart_data = _extract_cart_data(body)
        user = _load_user(store, user_id)
        user.replace_cart(cart_data)
        try:
            saved = store.save(USERS, user.to_dict())
        except StoreError as e:
            raise StoreUnavailable(str(e)) from e
    except CartUpdateError as e:
        logger.warning("Cart update failed for user=%s (%s): %s", user_id, e.kind, e)
        return CartUpdateResult.failed(e)
    except Exception as e:
        logger.exception("Unexpected error while updating cart for user=%s", user_id)
        return CartUpdateResult.failed(e)

    logger.info("Cart updated for user=%s", user_id)
    return CartUpdateResult.ok(saved)


def get_cart(store: DocumentStore, user_id: Optional[str]) -> CartUpdateResult:
    """Read back the stored cart; `user` holds the whole document on success."""
    try:
        user = _load_user(store, user_id)
    except CartUpdateError as e:
        logger.warning("Cart read failed for user=%s (%s): %s", user_id, e.kind, e)
        return CartUpdateResult.failed(e)
    except Exception as e:
        logger.exception("Unexpected error while reading cart for user=%s", user_id)
        return CartUpdateResult.failed(e)
    return CartUpdateResult.ok(user.to_dict())
