# app/main.py
from fastapi import FastAPI
import logging
from contextlib import asynccontextmanager

from app.config import get_settings
from app.database import build_store
from app.api.routes import cart as cart_routes
from app.middleware.cors_config import configure_cors
from app.middleware.security_headers import add_security_headers


logger = logging.getLogger("uvicorn.error")


def configure_logging(level: str) -> None:
    """Apply LOG_LEVEL to the service loggers (uvicorn owns the handlers)."""
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger("app").setLevel(lvl)
    logger.setLevel(lvl)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context: open the document store once before serving and close it
    on shutdown. A store already placed on app.state (tests) is reused.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    # --- startup logic ---
    store = getattr(app.state, "store", None) or build_store(settings)
    store.connect()
    app.state.store = store
    logger.info("Cart API starting (env=%s, store=%s)", settings.ENV, settings.STORE_BACKEND)

    yield
    # --- shutdown logic ---
    store.close()
    logger.info("Shutting down Cart API")

app = FastAPI(title="Cart API", version="0.1.0", lifespan=lifespan)
configure_cors(app)
add_security_headers(app)

app.include_router(cart_routes.router)


@app.get("/", tags=["root"])
async def root():
    return {"status": "ok", "service": "Cart API"}
