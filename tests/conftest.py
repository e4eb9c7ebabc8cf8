# tests/conftest.py
import os
import sys
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app.config import get_settings  # noqa: E402
from app.database import FileBackedDB  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture
def store(tmp_path):
    """
    Isolated file-backed store in a temp dir, installed as the app's store.
    """
    db = FileBackedDB(data_dir=tmp_path / "data").connect()
    app.state.store = db
    try:
        yield db
    finally:
        app.state.store = None


@pytest.fixture
def client(store):
    return TestClient(app)


@pytest.fixture
def make_token():
    """
    Mint an identity token the way the identity provider would.
    Usage: tok = make_token("user_1", exp_minutes=-1, secret="other")
    """
    def _fn(sub, exp_minutes=5, secret=None, **claims):
        settings = get_settings()
        payload = {"exp": datetime.now(timezone.utc) + timedelta(minutes=exp_minutes), **claims}
        if sub is not None:
            payload["sub"] = sub
        return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return _fn


@pytest.fixture
def auth_header(make_token):
    """
    Build an Authorization header for a user id.
    Usage: hdr = auth_header(user_id)
    """
    def _h(user_id: str):
        return {"Authorization": f"Bearer {make_token(user_id)}"}
    return _h


@pytest.fixture
def temp_user(store):
    """
    Create a user document with an empty cart and return it.
    """
    return store.insert(
        "users",
        {
            "id": f"user_{uuid.uuid4().hex[:8]}",
            "name": "Test Shopper",
            "email": "shopper@example.test",
            "imageUrl": "",
            "cartItem": {},
        },
    )


@pytest.fixture(
    params=["abc", "", "{}", "[1, 2]", True, False, 0, 5, 1.5, None, [1, 2], {}, {"p1": 2}, {"p1": {"size": "L", "qty": 1}}],
    ids=repr,
)
def cart_payload(request):
    """Any JSON value a client may send as cartData."""
    return request.param
