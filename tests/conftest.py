"""
Shared fakes and fixtures.

The fakes stand in for the two external APIs so tests can assert exactly
what was (and was not) asked of them.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chatrelay.application.exceptions import CompletionUnavailable, DeliveryError, StorageError
from chatrelay.application.ports.completion import CompletionPort
from chatrelay.application.ports.message_platform import DeliveryReceipt, MessagePlatformPort
from chatrelay.core.config import Settings
from chatrelay.domain.entities.message import Direction, Message
from chatrelay.infrastructure.store.json_store import JsonThreadStore
from chatrelay.infrastructure.store.memory_store import MemoryThreadStore
from chatrelay.infrastructure.store.sql_store import SqlThreadStore
from chatrelay.main import app
from chatrelay.wiring.dependencies import (
    build_container,
    get_handle_incoming_message_use_case,
    get_send_reply_use_case,
    get_thread_views_use_case,
)


class FakeCompletion(CompletionPort):
    def __init__(self, reply: str = "Hello! How can we help?", fail: bool = False) -> None:
        self.reply = reply
        self.fail = fail
        self.contexts: list[str] = []

    def complete(self, context: str) -> str:
        self.contexts.append(context)
        if self.fail:
            raise CompletionUnavailable("provider down")
        return self.reply


class FakePlatform(MessagePlatformPort):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    def send_text(self, recipient_id: str, text: str) -> DeliveryReceipt:
        if self.fail:
            raise DeliveryError("delivery rejected", status_code=400)
        self.sent.append((recipient_id, text))
        return DeliveryReceipt(recipient=recipient_id, provider_message_id=f"wamid.{len(self.sent)}")


class FlakyStore(MemoryThreadStore):
    """Memory store that raises StorageError on selected operations."""

    def __init__(self, fail_inbound: bool = False, fail_outbound: bool = False, fail_reads: bool = False) -> None:
        super().__init__()
        self.fail_inbound = fail_inbound
        self.fail_outbound = fail_outbound
        self.fail_reads = fail_reads

    def append(self, sender: str, body: str, direction: Direction) -> Message:
        if direction is Direction.INBOUND and self.fail_inbound:
            raise StorageError("store unavailable")
        if direction is Direction.OUTBOUND and self.fail_outbound:
            raise StorageError("store unavailable")
        return super().append(sender, body, direction)

    def list_ordered(self, sender: str) -> list[Message]:
        if self.fail_reads:
            raise StorageError("store unavailable")
        return super().list_ordered(sender)


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **{"ENV": "test", **overrides})


@pytest.fixture(params=["memory", "json", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        yield MemoryThreadStore()
    elif request.param == "json":
        yield JsonThreadStore(data_dir=str(tmp_path / "threads"))
    else:
        sql_store = SqlThreadStore(f"sqlite:///{tmp_path / 'relay.db'}")
        yield sql_store
        sql_store.close()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def container(completion, platform):
    return build_container(make_settings(), store=MemoryThreadStore(), completion=completion, platform=platform)


@pytest.fixture
def client(container):
    app.dependency_overrides[get_handle_incoming_message_use_case] = lambda: container.handle_incoming_message
    app.dependency_overrides[get_send_reply_use_case] = lambda: container.send_reply
    app.dependency_overrides[get_thread_views_use_case] = lambda: container.thread_views
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
