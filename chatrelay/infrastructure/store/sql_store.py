"""
SQLAlchemy-backed thread store.

Addressed by a connection string (``STORE_URL``), e.g.
``sqlite:///./data/relay.db`` or ``postgresql+psycopg://...``.
Rows are ordered by (created_at, id); created_at is strictly increasing per
sender for writes made through one process.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from chatrelay.application.exceptions import StorageError
from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.domain.entities.message import Direction, Message
from chatrelay.domain.entities.presence import SenderPresence
from chatrelay.domain.entities.thread_summary import ThreadSummary
from chatrelay.infrastructure.store.clock import MonotonicClock, as_utc
from chatrelay.infrastructure.store.locks import SenderLocks


logger = logging.getLogger(__name__)

Base = declarative_base()

T = TypeVar("T")


class MessageRow(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender = Column(String(64), nullable=False, index=True)
    body = Column(Text, nullable=False)
    direction = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class PresenceRow(Base):
    __tablename__ = "sender_presence"

    sender = Column(String(64), primary_key=True)
    first_seen_at = Column(DateTime(timezone=True), nullable=False)
    last_active_at = Column(DateTime(timezone=True), nullable=False)


class EventRow(Base):
    __tablename__ = "relayed_events"
    __table_args__ = (UniqueConstraint("sender", "event_id", name="uq_relayed_event"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender = Column(String(64), nullable=False, index=True)
    event_id = Column(String(255), nullable=False)


class SqlThreadStore(ThreadStorePort):
    def __init__(self, url: str, timeout: float = 5.0, echo: bool = False) -> None:
        engine_kwargs: dict = {"echo": echo}
        if url.startswith("sqlite"):
            # check_same_thread=False: sessions are used from FastAPI's worker threads
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        else:
            engine_kwargs["pool_timeout"] = timeout
            engine_kwargs["pool_pre_ping"] = True

        try:
            self._engine = create_engine(url, **engine_kwargs)
            Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot open store: {e}") from e

        self._sessions = sessionmaker(bind=self._engine, autocommit=False, autoflush=False, expire_on_commit=False)
        self._locks = SenderLocks(timeout)
        self._clock = MonotonicClock()
        logger.info("SQL thread store ready at %s", self._engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        self._engine.dispose()

    def _run(self, what: str, work: Callable[[Session], T]) -> T:
        session = self._sessions()
        try:
            result = work(session)
            session.commit()
            return result
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"{what} failed: {e}") from e
        finally:
            session.close()

    def append(self, sender: str, body: str, direction: Direction) -> Message:
        direction = Direction(direction)

        def work(session: Session) -> Message:
            previous = session.scalar(select(func.max(MessageRow.created_at)).where(MessageRow.sender == sender))
            row = MessageRow(
                sender=sender,
                body=body,
                direction=direction.value,
                created_at=self._clock.now(as_utc(previous) if previous else None),
            )
            session.add(row)
            session.flush()
            return _to_message(row)

        with self._locks.hold(sender):
            return self._run("append", work)

    def list_ordered(self, sender: str) -> list[Message]:
        def work(session: Session) -> list[Message]:
            rows = session.scalars(
                select(MessageRow)
                .where(MessageRow.sender == sender)
                .order_by(MessageRow.created_at.asc(), MessageRow.id.asc())
            ).all()
            return [_to_message(r) for r in rows]

        return self._run("list_ordered", work)

    def upsert_presence(self, sender: str) -> SenderPresence:
        def work(session: Session) -> SenderPresence:
            row = session.get(PresenceRow, sender)
            if row is None:
                now = self._clock.now()
                row = PresenceRow(sender=sender, first_seen_at=now, last_active_at=now)
                session.add(row)
            else:
                row.last_active_at = self._clock.now(as_utc(row.last_active_at))
            session.flush()
            return _to_presence(row)

        with self._locks.hold(sender):
            try:
                return self._run("upsert_presence", work)
            except StorageError as e:
                # Another process created the row between our read and insert.
                if not isinstance(e.__cause__, IntegrityError):
                    raise
                return self._run("upsert_presence", work)

    def get_presence(self, sender: str) -> SenderPresence | None:
        def work(session: Session) -> SenderPresence | None:
            row = session.get(PresenceRow, sender)
            return _to_presence(row) if row is not None else None

        return self._run("get_presence", work)

    def list_presence(self) -> list[SenderPresence]:
        def work(session: Session) -> list[SenderPresence]:
            rows = session.scalars(select(PresenceRow).order_by(PresenceRow.last_active_at.desc())).all()
            return [_to_presence(r) for r in rows]

        return self._run("list_presence", work)

    def list_thread_summaries(self) -> list[ThreadSummary]:
        ranked = select(
            MessageRow.sender,
            MessageRow.body,
            MessageRow.created_at,
            func.row_number()
            .over(
                partition_by=MessageRow.sender,
                order_by=(MessageRow.created_at.desc(), MessageRow.id.desc()),
            )
            .label("recency"),
        ).subquery()
        query = (
            select(ranked.c.sender, ranked.c.body, ranked.c.created_at)
            .where(ranked.c.recency == 1)
            .order_by(ranked.c.created_at.desc(), ranked.c.sender.asc())
        )

        def work(session: Session) -> list[ThreadSummary]:
            return [
                ThreadSummary(
                    sender=row.sender,
                    last_message_body=row.body,
                    last_message_at=as_utc(row.created_at),
                )
                for row in session.execute(query)
            ]

        return self._run("list_thread_summaries", work)

    def remember_event(self, sender: str, event_id: str, window: int) -> bool:
        def work(session: Session) -> bool:
            exists = session.scalar(
                select(EventRow.id).where(EventRow.sender == sender, EventRow.event_id == event_id)
            )
            if exists is not None:
                return False
            session.add(EventRow(sender=sender, event_id=event_id))
            session.flush()
            stale = session.scalars(
                select(EventRow)
                .where(EventRow.sender == sender)
                .order_by(EventRow.id.desc())
                .offset(max(1, window))
            ).all()
            for row in stale:
                session.delete(row)
            return True

        with self._locks.hold(sender):
            try:
                return self._run("remember_event", work)
            except StorageError as e:
                if isinstance(e.__cause__, IntegrityError):
                    return False
                raise

    def forget_event(self, sender: str, event_id: str) -> None:
        def work(session: Session) -> None:
            session.execute(
                delete(EventRow).where(EventRow.sender == sender, EventRow.event_id == event_id)
            )

        with self._locks.hold(sender):
            self._run("forget_event", work)


def _to_message(row: MessageRow) -> Message:
    return Message(
        sender=row.sender,
        body=row.body,
        direction=Direction(row.direction),
        timestamp=as_utc(row.created_at),
    )


def _to_presence(row: PresenceRow) -> SenderPresence:
    return SenderPresence(
        sender=row.sender,
        first_seen_at=as_utc(row.first_seen_at),
        last_active_at=as_utc(row.last_active_at),
    )
