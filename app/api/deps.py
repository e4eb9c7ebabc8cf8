# app/api/deps.py
from typing import Optional
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.config import get_settings
from app.database import DocumentStore, build_store

logger = logging.getLogger(__name__)

# auto_error=False: a missing header is not rejected here, identity just resolves to None
bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> DocumentStore:
    """
    Dependency that returns the process-wide document store.
    The lifespan opens it at startup; when the app runs without lifespan (bare
    test client) it is created here once and kept on app.state.
    Usage:
        store = Depends(get_store)
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = build_store(get_settings())
        request.app.state.store = store
    return store.connect()


def _decode_token(token: str) -> Optional[str]:
    """
    Verify a token issued by the identity provider and return its 'sub' claim.
    Returns None for anything that does not verify.
    """
    if not token:
        return None
    settings = get_settings()
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except JWTError as e:
        logger.debug("Rejected identity token: %s", e)
        return None
    sub = payload.get("sub")
    if not sub:
        return None
    return str(sub)


def resolve_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """
    Resolve the caller's user id from the Authorization header (Bearer) or, when
    no header is sent, from the provider's session cookie.
    Returns None when nothing verifies; callers decide what an absent identity means.
    """
    if credentials is not None and credentials.credentials:
        return _decode_token(credentials.credentials)

    cookie_token = request.cookies.get(get_settings().SESSION_COOKIE)
    if cookie_token:
        return _decode_token(cookie_token)
    return None
