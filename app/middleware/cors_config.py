from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings

def configure_cors(app):
    origins = get_settings().cors_origins
    if not origins:
        origins = ["http://localhost:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )
