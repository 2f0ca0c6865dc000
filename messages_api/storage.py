import logging
from typing import Iterable, List

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import Settings
from .errors import MessageValidationError, StartupError, StorageError
from .models import Base, Message


logger = logging.getLogger(__name__)

IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def _engine_options(url: str, pool_size: int) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in IN_MEMORY_SQLITE:
            # every session has to see the same in-memory database
            options["poolclass"] = StaticPool
        return options
    return {"pool_size": pool_size}


def create_db_engine(settings: Settings) -> Engine:
    url = settings.database_url
    return create_engine(url, **_engine_options(url, settings.pool_size))


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(engine: Engine, *, fail_fast: bool = False) -> bool:
    """
    Create the messages table if it is absent.

    Returns True on success. A failure is logged and, unless fail_fast is
    set, startup carries on without the table.
    """
    try:
        with engine.begin() as conn:
            logger.info("Connected to the database at %s", engine.url.render_as_string())
            Base.metadata.create_all(bind=conn)
    except SQLAlchemyError as exc:
        logger.exception("Error connecting to the database or creating the table")
        if fail_fast:
            raise StartupError("schema initialization failed") from exc
        return False
    logger.info('Table "messages" verified/created')
    return True


def get_db(request: Request) -> Iterable[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def list_messages(db: Session) -> List[Message]:
    try:
        return (
            db.query(Message)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error retrieving messages")
        raise StorageError("Error retrieving messages") from exc


def create_message(db: Session, text: str) -> Message:
    if not isinstance(text, str) or not text:
        raise MessageValidationError()

    msg = Message(text=text)
    db.add(msg)
    try:
        db.commit()
        # pull back the server-assigned id and timestamp
        db.refresh(msg)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error inserting message")
        raise StorageError("Error inserting message") from exc
    return msg
