import logging

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Environment is loaded by Pydantic Settings (see unlinked.core.settings).
from unlinked.api import register_routes
from unlinked.core.dependencies import (
    get_chat_service,
    get_mongo_connector,
    get_notification_service,
    get_realtime,
    get_user_directory,
)
from unlinked.core.exceptions import register_exception_handlers
from unlinked.core.logging import setup_logging
from unlinked.core.settings import settings

# Initialize logging early so all modules inherit the handlers/level
setup_logging(settings.log_level or settings.log_level_fallback)

app = FastAPI(title="UnLinked Realtime API", debug=settings.debug)
register_exception_handlers(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)

# Socket.IO answers on /socket.io; every other path falls through to FastAPI.
asgi_app = socketio.ASGIApp(get_realtime().server, other_asgi_app=app)

logger = logging.getLogger(__name__)
logger.info("UnLinked API initialized (env=%s)", settings.app_env)


@app.on_event("startup")
def _require_jwt_secret() -> None:
    # Refuse to serve with the local signing key outside dev/test.
    settings.jwt_signing_key()


@app.on_event("startup")
def _ensure_indexes_on_startup() -> None:
    """Ensure Mongo indexes exist once at boot.

    Best-effort: logs a warning on failure but does not block app startup.
    """
    for label, provider in (
        ("Users", get_user_directory),
        ("Chat", get_chat_service),
        ("Notification", get_notification_service),
    ):
        try:
            provider().ensure_indexes()
            logger.info("%s indexes ensured", label)
        except Exception as exc:  # pragma: no cover - external dependency
            logger.warning("Failed to ensure %s indexes: %s", label, exc)


@app.on_event("shutdown")
def _shutdown() -> None:
    get_realtime().typing.cancel_all()
    get_mongo_connector().close()
