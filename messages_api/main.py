import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import (
    APIRouter,
    FastAPI,
    Depends,
    Request,
    status,
)
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field

from sqlalchemy.orm import Session

from .config import Settings
from .errors import MessageValidationError, StorageError
from .lifecycle import InFlightTracker, close_when_idle, track_in_flight
from .logging_utils import configure_logging, logging_middleware
from .storage import (
    create_db_engine,
    create_message,
    create_session_factory,
    get_db,
    init_db,
    list_messages,
)


logger = logging.getLogger(__name__)

ROOT_TEXT = "Messages API is running. Try /messages"


# ---------- Pydantic Models ----------


class MessageCreate(BaseModel):
    text: str = Field(min_length=1)


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    timestamp: Optional[datetime]


# ---------- Exception handlers ----------


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # malformed JSON and a missing/empty "text" both land here
    logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": MessageValidationError().message},
    )


async def message_validation_handler(request: Request, exc: MessageValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": exc.message},
    )


async def storage_error_handler(request: Request, exc: StorageError):
    # details were logged where the error was raised; only the generic text leaves
    logger.warning(
        "Request %s failed: %s",
        getattr(request.state, "request_id", "-"),
        exc.message,
    )
    if isinstance(getattr(request.state, "log_extra", None), dict):
        request.state.log_extra["error"] = exc.message
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.message},
    )


# ---------- Endpoints ----------


router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
def root():
    # no storage access, answers even when the database is down
    return PlainTextResponse(content=ROOT_TEXT, media_type="text/plain")


@router.get("/messages", response_model=list[MessageOut])
def get_messages(db: Session = Depends(get_db)):
    return list_messages(db)


@router.post(
    "/messages",
    response_model=MessageOut,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    request: Request,
    payload: MessageCreate,
    db: Session = Depends(get_db),
):
    msg = create_message(db, payload.text)
    # enrich the access log line
    request.state.log_extra["message_id"] = msg.id
    return msg


# ---------- App factory ----------


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API.

    Settings are read from the environment at startup when none are given,
    so importing this module never needs a database.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings if settings is not None else Settings()
        cfg.validate()
        configure_logging(cfg.LOG_LEVEL)

        engine = create_db_engine(cfg)
        init_db(engine, fail_fast=cfg.STARTUP_FAIL_FAST)

        app.state.settings = cfg
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        logger.info("Messages API listening on port %s", cfg.port)
        try:
            yield
        finally:
            await close_when_idle(app.state.in_flight, engine, cfg.shutdown_timeout)

    app = FastAPI(title="Messages API", lifespan=lifespan)
    app.state.in_flight = InFlightTracker()

    # last registered runs outermost, so access logs cover the tracked span
    app.middleware("http")(track_in_flight)
    app.middleware("http")(logging_middleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(MessageValidationError, message_validation_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

    app.include_router(router)
    return app


app = create_app()
