from __future__ import annotations

from conftest import FakeCompletion, FakePlatform, FlakyStore, make_settings

from chatrelay.domain.entities.message import Direction
from chatrelay.main import app
from chatrelay.wiring.dependencies import build_container, get_send_reply_use_case, get_thread_views_use_case


def test_summaries_empty(client):
    resp = client.get("/admin")

    assert resp.status_code == 200
    assert resp.json() == {"threads": []}


def test_summaries_most_recent_first(client, container):
    container.store.append("A", "from a", Direction.INBOUND)
    container.store.append("B", "from b", Direction.INBOUND)
    container.store.append("A", "latest for a", Direction.OUTBOUND)

    threads = client.get("/admin").json()["threads"]

    assert [t["sender"] for t in threads] == ["A", "B"]
    assert threads[0]["last_message_body"] == "latest for a"


def test_transcript(client, container):
    container.store.append("911234567890", "hi", Direction.INBOUND)
    container.store.append("911234567890", "Hello", Direction.OUTBOUND)

    data = client.get("/chat/911234567890").json()

    assert data["sender"] == "911234567890"
    assert [(m["direction"], m["body"]) for m in data["messages"]] == [("inbound", "hi"), ("outbound", "Hello")]


def test_transcript_unknown_sender_is_empty(client):
    resp = client.get("/chat/000")

    assert resp.status_code == 200
    assert resp.json() == {"sender": "000", "messages": []}


def test_senders(client, container):
    container.store.upsert_presence("A")
    container.store.upsert_presence("B")

    senders = client.get("/admin/senders").json()["senders"]

    assert [s["sender"] for s in senders] == ["B", "A"]


def test_manual_reply_delivers_records_and_redirects(client, container, platform):
    resp = client.post(
        "/reply",
        data={"to": "911234567890", "message": "Our team is on the way"},
        follow_redirects=False,
    )

    assert resp.status_code == 303
    assert resp.headers["location"] == "/chat/911234567890"
    assert platform.sent == [("911234567890", "Our team is on the way")]
    thread = container.store.list_ordered("911234567890")
    assert [(m.direction, m.body) for m in thread] == [(Direction.OUTBOUND, "Our team is on the way")]
    assert container.store.get_presence("911234567890") is not None


def test_manual_reply_delivery_failure(client, container, platform):
    platform.fail = True

    resp = client.post("/reply", data={"to": "A", "message": "hello"}, follow_redirects=False)

    assert resp.status_code == 502
    assert container.store.list_ordered("A") == []


def test_manual_reply_requires_fields(client):
    resp = client.post("/reply", data={"to": "A", "message": "   "}, follow_redirects=False)

    assert resp.status_code == 400


def test_manual_reply_lost_record(client, platform):
    broken = build_container(
        make_settings(), store=FlakyStore(fail_outbound=True), completion=FakeCompletion(), platform=platform
    )
    app.dependency_overrides[get_send_reply_use_case] = lambda: broken.send_reply

    resp = client.post("/reply", data={"to": "A", "message": "hello"}, follow_redirects=False)

    assert resp.status_code == 500
    assert platform.sent == [("A", "hello")]


def test_store_outage_on_transcript(client):
    broken = build_container(
        make_settings(), store=FlakyStore(fail_reads=True), completion=FakeCompletion(), platform=FakePlatform()
    )
    app.dependency_overrides[get_thread_views_use_case] = lambda: broken.thread_views

    assert client.get("/chat/A").status_code == 503
