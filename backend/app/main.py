import logging.config

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.metrics import router as metrics_router
from app.api.routes import router as api_router
from app.api.ws import router as ws_router
from app.config import get_settings
from app.core.errors import PersistenceError
from app.database import SessionLocal, init_db
from app.services import ChatStore, EventRelay
from ghostcord.realtime import SessionRegistry


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        }
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "root": {
        "handlers": ["default"],
        "level": "INFO",
    },
    "loggers": {
        "ghostcord.realtime": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        }
    },
}


logging.config.dictConfig(LOGGING_CONFIG)

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_origin_regex=settings.cors_allow_origin_regex,
)


@app.get("/health", tags=["system"])
def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


@app.exception_handler(PersistenceError)
async def _persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": exc.detail, "code": exc.code},
    )


@app.on_event("startup")
async def _startup() -> None:
    # Tests install their own session factory before the app starts.
    session_factory = getattr(app.state, "session_factory", None)
    if session_factory is None:
        if settings.database_auto_create:
            init_db()
        session_factory = SessionLocal
    store = ChatStore(
        session_factory,
        default_channel=settings.default_channel_name,
        history_limit=settings.chat_history_limit,
    )
    app.state.store = store
    app.state.relay = EventRelay(store, SessionRegistry(), settings=settings)
    logger.info("Relay started (channel delivery scope: %s)", settings.channel_delivery_scope)


@app.on_event("shutdown")
async def _shutdown() -> None:
    relay = getattr(app.state, "relay", None)
    if relay is not None:
        relay.shutdown()


app.include_router(api_router, prefix="/api")
app.include_router(ws_router)
app.include_router(metrics_router)
