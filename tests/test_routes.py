import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from tests.conftest import FakeTranscoder


@pytest.fixture
def client(make_services):
    app = create_app(make_services())
    with TestClient(app) as c:
        yield c


def _upload(client, session_id, audio):
    return client.post(
        "/upload-chunk",
        data={"sessionId": session_id},
        files={"audio": ("chunk.webm", audio, "audio/webm")},
    )


def test_record_then_summarize_scenario(client):
    r1 = _upload(client, "s1", b"hello")
    assert r1.status_code == 200
    assert r1.json() == {"transcript": "hello"}

    r2 = _upload(client, "s1", b"world")
    assert r2.json() == {"transcript": "world"}

    r3 = client.post("/summarize", json={"sessionId": "s1"})
    assert r3.status_code == 200
    assert r3.json()["summary"] == "summary #1 of: hello world"

    session = client.get("/sessions/s1").json()
    assert session["state"] == "completed"
    assert session["ended_at"] is not None
    assert session["chunks"] == [{"ordinal": 0, "text": "hello"}, {"ordinal": 1, "text": "world"}]


def test_summarize_unknown_session_is_client_error(client):
    r = client.post("/summarize", json={"sessionId": "s2"})
    assert r.status_code == 400
    assert r.json() == {"summary": "No transcript available for this session."}
    assert client.get("/sessions/s2").status_code == 404
    assert client.get("/sessions").json() == []


def test_missing_fields_are_rejected(client):
    r = client.post("/upload-chunk", data={"sessionId": "s1"})
    assert r.status_code == 422

    r = client.post("/upload-chunk", files={"audio": ("chunk.webm", b"x", "audio/webm")})
    assert r.status_code == 422

    r = client.post("/summarize", json={})
    assert r.status_code == 422
    assert client.get("/sessions").json() == []


def test_session_id_is_used_verbatim(client):
    assert _upload(client, "s1 ", b"hello").status_code == 200

    r = client.post("/summarize", json={"sessionId": "s1 "})
    assert r.status_code == 200
    assert r.json()["summary"] == "summary #1 of: hello"

    sessions = client.get("/sessions").json()
    assert [s["id"] for s in sessions] == ["s1 "]
    assert sessions[0]["state"] == "completed"

    r = client.post("/summarize", json={"sessionId": "s1"})
    assert r.status_code == 400


def test_adapter_failure_is_server_error(make_services):
    app = create_app(make_services(transcoder=FakeTranscoder(fail=True)))
    with TestClient(app) as c:
        r = _upload(c, "s1", b"hello")
        assert r.status_code == 500
        assert r.json() == {"error": "Failed to process/transcribe chunk."}
        assert c.get("/sessions/s1").json()["chunks"] == []


def test_list_sessions_shape_and_order(client):
    _upload(client, "first", b"a")
    _upload(client, "second", b"b")
    _upload(client, "second", b"c")
    client.post("/summarize", json={"sessionId": "second"})

    sessions = client.get("/sessions").json()

    assert [s["id"] for s in sessions] == ["second", "first"]
    assert sessions[0]["summary"] == "summary #1 of: b c"
    assert sessions[0]["chunks"] == [{"ordinal": 0, "text": "b"}, {"ordinal": 1, "text": "c"}]
    assert sessions[1]["summary"] is None
    assert sessions[1]["state"] == "recording"


def test_websocket_subscriber_receives_session_events(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "join_session", "sessionId": "s1"})
        assert ws.receive_json() == {"event": "joined", "data": {"sessionId": "s1"}}

        _upload(client, "s1", b"hello")
        assert ws.receive_json() == {
            "event": "transcript_update",
            "data": {"sessionId": "s1", "ordinal": 0, "text": "hello"},
        }
        assert ws.receive_json() == {"event": "session_state", "data": {"sessionId": "s1", "state": "recording"}}

        client.post("/summarize", json={"sessionId": "s1"})
        ready = ws.receive_json()
        assert ready["event"] == "summary_ready"
        assert ready["data"]["summary"] == "summary #1 of: hello"
        assert ws.receive_json() == {"event": "session_state", "data": {"sessionId": "s1", "state": "completed"}}


def test_websocket_ping_and_bad_messages(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "ping"})
        assert ws.receive_json() == {"event": "pong"}
        ws.send_text("not json")
        assert ws.receive_json()["event"] == "error"
        ws.send_json({"event": "join_session"})
        assert ws.receive_json() == {"event": "error", "data": {"message": "sessionId required"}}


def test_health(client):
    assert client.get("/health/live").json() == {"status": "alive"}
    assert client.get("/health/ready").json() == {"status": "ready", "database": True}
    assert client.get("/").json() == {"status": "Scribe backend running"}
