import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_store, resolve_identity
from app.api.schemas.cart import CartReadResponse, CartUpdateResponse
from app.database import DocumentStore
from app.services.cart import CartUpdateResult, InvalidCartPayload, get_cart, update_cart

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _failure(result: CartUpdateResult) -> JSONResponse:
    return JSONResponse({"success": False, "message": result.message})


def _render(payload: Dict[str, Any]) -> JSONResponse:
    try:
        return JSONResponse(payload)
    except (ValueError, RecursionError) as e:
        logger.error("Cannot render cart response: %s", e)
        return JSONResponse({"success": False, "message": f"Cannot render response: {e}"})


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _parse_body(raw: bytes) -> Any:
    # json.loads accepts NaN / Infinity by default; those cannot be sent back as JSON
    return json.loads(raw, parse_constant=_reject_constant)


@router.post("/update", response_model=None, responses={200: {"model": CartUpdateResponse}})
async def update_cart_route(
    request: Request,
    user_id: Optional[str] = Depends(resolve_identity),
    store: DocumentStore = Depends(get_store),
):
    """
    Overwrite the caller's cart with body["cartData"].
    Always answers 200; `success` tells whether the cart was stored.
    The body is parsed here (not by a pydantic model) so a bad body gets the
    same failure envelope as every other error.
    """
    try:
        body = _parse_body(await request.body())
    except (ValueError, RecursionError) as e:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors
        result = CartUpdateResult.failed(InvalidCartPayload(f"Malformed JSON body: {e}"))
        logger.warning("Cart update rejected for user=%s: %s", user_id, result.message)
        return _failure(result)

    result = await run_in_threadpool(update_cart, store, user_id, body)
    if not result.success:
        return _failure(result)
    return _render({"success": True, "user": result.user})


@router.get("/get", response_model=None, responses={200: {"model": CartReadResponse}})
def get_cart_route(
    user_id: Optional[str] = Depends(resolve_identity),
    store: DocumentStore = Depends(get_store),
):
    """
    Return the caller's stored cart.
    """
    result = get_cart(store, user_id)
    if not result.success:
        return _failure(result)
    return _render({"success": True, "cartItems": result.user.get("cartItem", {})})
