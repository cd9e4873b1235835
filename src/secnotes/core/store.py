"""
core.store
~~~~~~~~~~

Owner-scoped CRUD over :class:`~secnotes.models.schema.Record`.

The sensitive text is sealed by the injected :class:`~secnotes.core.codec.Codec`
before it reaches the database and opened again on the way out; callers
only ever receive :class:`~secnotes.models.records.RecordView` objects.
Every lookup filters on both the record id and the owner id, so a record
owned by someone else is indistinguishable from one that does not exist.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from secnotes.core.codec import Codec
from secnotes.core.errors import (
    BackendError,
    CodecError,
    NotFoundError,
    ValidationError,
)
from secnotes.models.records import RecordPatch, RecordView
from secnotes.models.schema import MAX_RECORD_ID, Record
from secnotes.shared import Logger

logger = Logger(__name__).get_logger()

TITLE_MIN_LENGTH = 1
TITLE_MAX_LENGTH = 255
SENSITIVE_MAX_LENGTH = 2000

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _utcnow() -> datetime:
    # Naive UTC, the form SQLite hands back
    return datetime.now(UTC).replace(tzinfo=None)


def _check_encodable(name: str, value: str) -> None:
    # Lone surrogates are valid str but cannot be sealed
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValidationError(f"{name} must be valid UTF-8 text") from e


def _check_title(title) -> None:
    if not isinstance(title, str):
        raise ValidationError("title must be a string")
    if not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
        raise ValidationError(
            f"title length must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH}"
        )
    _check_encodable("title", title)


def _check_sensitive_text(sensitive_text) -> None:
    if not isinstance(sensitive_text, str):
        raise ValidationError("sensitive_text must be a string")
    if len(sensitive_text) > SENSITIVE_MAX_LENGTH:
        raise ValidationError(
            f"sensitive_text length must be at most {SENSITIVE_MAX_LENGTH}"
        )
    _check_encodable("sensitive_text", sensitive_text)


class RecordStore:
    def __init__(self, engine: Engine, codec: Codec):
        self._engine = engine
        self._codec = codec

    # ============================================================================
    #       Operations
    # ============================================================================
    def create(self, owner_id: str, title: str, sensitive_text: str) -> RecordView:
        _check_title(title)
        _check_sensitive_text(sensitive_text)

        envelope = self._codec.seal(sensitive_text.encode("utf-8"))
        now = _utcnow()

        with self._session() as session:
            record = Record(
                owner_id=owner_id,
                title=title,
                sensitive_envelope=envelope,
                completed=False,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            session.commit()
            session.refresh(record)

            logger.info("Created record %s for owner %s", record.id, owner_id)
            return self._view(record, sensitive_text)

    def list(
        self, owner_id: str, limit: int = DEFAULT_LIMIT, offset: int = 0
    ) -> list[RecordView]:
        """
        Return one page of the owner's records, newest first.

        If any envelope on the page fails to open the whole call fails; a
        corrupted record is never dropped or masked silently.
        """
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError("limit must be an integer")
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise ValidationError("offset must be an integer")
        if not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")
        if offset < 0:
            raise ValidationError("offset must not be negative")

        with self._session() as session:
            records = session.exec(
                select(Record)
                .where(Record.owner_id == owner_id)
                .order_by(Record.created_at.desc(), Record.id.desc())
                .offset(offset)
                .limit(limit)
            ).all()

            logger.debug(
                "Listing %s record(s) for owner %s (limit=%s, offset=%s)",
                len(records),
                owner_id,
                limit,
                offset,
            )
            return [self._view(record, self._open(record)) for record in records]

    def get(self, owner_id: str, record_id: int) -> RecordView:
        with self._session() as session:
            record = self._owned(session, owner_id, record_id)
            return self._view(record, self._open(record))

    def update(self, owner_id: str, record_id: int, patch: RecordPatch) -> RecordView:
        """
        Apply the fields present on *patch* and refresh ``updated_at``.

        The row is locked, changed and committed in one transaction so the
        provided fields and the new timestamp land together or not at all.
        """
        changes = patch.present_fields()

        if "title" in changes:
            _check_title(changes["title"])
        if "sensitive_text" in changes:
            _check_sensitive_text(changes["sensitive_text"])
        if "completed" in changes and not isinstance(changes["completed"], bool):
            raise ValidationError("completed must be a boolean")

        envelope = None
        if "sensitive_text" in changes:
            envelope = self._codec.seal(changes["sensitive_text"].encode("utf-8"))

        with self._session() as session:
            record = self._owned(session, owner_id, record_id, for_update=True)

            # A stored envelope that no longer opens blocks the whole update
            if envelope is None:
                sensitive_text = self._open(record)
            else:
                sensitive_text = changes["sensitive_text"]

            if "title" in changes:
                record.title = changes["title"]
            if envelope is not None:
                record.sensitive_envelope = envelope
            if "completed" in changes:
                record.completed = changes["completed"]

            # updated_at must move forward even if the clock has not
            now = _utcnow()
            if now <= record.updated_at:
                now = record.updated_at + timedelta(microseconds=1)
            record.updated_at = now

            session.add(record)
            session.commit()
            session.refresh(record)

            logger.info(
                "Updated record %s for owner %s (fields: %s)",
                record_id,
                owner_id,
                ", ".join(sorted(changes)) or "none",
            )

            return self._view(record, sensitive_text)

    def delete(self, owner_id: str, record_id: int) -> None:
        with self._session() as session:
            record = self._owned(session, owner_id, record_id, for_update=True)
            session.delete(record)
            session.commit()

        logger.info("Deleted record %s for owner %s", record_id, owner_id)

    # ============================================================================
    #       Helpers
    # ============================================================================
    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self._engine) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Persistence failure: %s", type(e).__name__)
            raise BackendError("Record backend failed") from e

    def _owned(
        self, session: Session, owner_id: str, record_id: int, for_update: bool = False
    ) -> Record:
        # Ids the backend cannot even bind are simply not there
        if (
            isinstance(record_id, bool)
            or not isinstance(record_id, int)
            or not 1 <= record_id <= MAX_RECORD_ID
        ):
            logger.info("Record id out of range for owner %s", owner_id)
            raise NotFoundError()

        statement = select(Record).where(
            Record.id == record_id, Record.owner_id == owner_id
        )
        if for_update:
            statement = statement.with_for_update()

        record = session.exec(statement).first()
        if record is None:
            logger.info("Record %s not visible to owner %s", record_id, owner_id)
            raise NotFoundError()
        return record

    def _open(self, record: Record) -> str:
        try:
            return self._codec.open(record.sensitive_envelope).decode("utf-8")
        except CodecError as e:
            logger.error(
                "%s on record %s (owner %s)",
                type(e).__name__,
                record.id,
                record.owner_id,
            )
            raise

    @staticmethod
    def _view(record: Record, sensitive_text: str) -> RecordView:
        return RecordView(
            id=record.id,
            owner_id=record.owner_id,
            title=record.title,
            sensitive_text=sensitive_text,
            completed=record.completed,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
