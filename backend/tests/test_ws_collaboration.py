"""Integration tests for the collaboration websocket and its REST views."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient
from starlette.testclient import WebSocketTestSession
from starlette.websockets import WebSocketDisconnect

from app.core.security import create_access_token
from app.models import CollaboratorStatus, Itinerary, ItineraryCollaborator, User


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def issue_token(user: User) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email})


def next_event(ws: WebSocketTestSession) -> dict[str, Any]:
    """Return the next application frame, skipping server keepalive pings."""

    while True:
        message = ws.receive_json()
        if message.get("type") != "ping":
            return message


@pytest.fixture()
def trip(session_factory):
    """An itinerary owned by Asha, shared with Ben; Chen is a stranger."""

    with session_factory() as session:
        asha = User(email="asha@example.com", name="Asha")
        ben = User(email="ben@example.com", name="Ben")
        chen = User(email="chen@example.com", name="Chen")
        session.add_all([asha, ben, chen])
        session.commit()

        itinerary = Itinerary(user_id=asha.id, destination="Kyoto")
        session.add(itinerary)
        session.commit()

        session.add(
            ItineraryCollaborator(
                itinerary_id=itinerary.id,
                user_id=ben.id,
                status=CollaboratorStatus.ACCEPTED,
                invited_by=asha.id,
            )
        )
        session.commit()
        return {"itinerary": itinerary.id, "asha": asha, "ben": ben, "chen": chen}


def test_handshake_without_token_is_refused(client: TestClient):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/collaboration"):
            pass

    assert exc.value.code == 1008


def test_handshake_with_invalid_token_is_refused(client: TestClient):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/collaboration?token=forged"):
            pass

    assert exc.value.code == 1008


def test_bearer_header_is_accepted(client: TestClient, trip):
    token = issue_token(trip["asha"])

    with client.websocket_connect("/ws/collaboration", headers=auth_headers(token)) as ws:
        ws.send_json({"type": "join-room", "data": {"itineraryId": trip["itinerary"]}})
        assert ws.receive_json() == {"type": "current-editors", "data": []}


def test_editors_see_each_other_join_and_leave(client: TestClient, trip):
    itinerary_id = trip["itinerary"]
    asha_token = issue_token(trip["asha"])
    ben_token = issue_token(trip["ben"])

    with client.websocket_connect(f"/ws/collaboration?token={asha_token}") as asha_ws:
        asha_ws.send_json({"type": "join-room", "data": {"itineraryId": itinerary_id}})
        assert next_event(asha_ws) == {"type": "current-editors", "data": []}

        with client.websocket_connect(f"/ws/collaboration?token={ben_token}") as ben_ws:
            ben_ws.send_json({"type": "join-room", "data": {"itineraryId": itinerary_id}})

            joined = next_event(asha_ws)
            assert joined["type"] == "user-joined"
            assert joined["data"] == {
                "userId": trip["ben"].id,
                "name": "Ben",
                "email": "ben@example.com",
            }

            editors = next_event(ben_ws)
            assert editors["type"] == "current-editors"
            assert [entry["userId"] for entry in editors["data"]] == [trip["asha"].id]

            ben_ws.send_json(
                {
                    "type": "field-change",
                    "data": {"itineraryId": itinerary_id, "field": "destination", "value": "Osaka"},
                }
            )
            update = next_event(asha_ws)
            assert update["type"] == "field-update"
            assert update["data"]["value"] == "Osaka"
            assert update["data"]["userName"] == "Ben"

            response = client.get(
                f"/api/realtime/itineraries/{itinerary_id}/editors",
                headers=auth_headers(asha_token),
            )
            assert response.status_code == 200
            assert sorted(entry["user_id"] for entry in response.json()) == sorted(
                [trip["asha"].id, trip["ben"].id]
            )

        left = next_event(asha_ws)
        assert left == {"type": "user-left", "data": {"userId": trip["ben"].id, "name": "Ben"}}


def test_stranger_cannot_join_room(client: TestClient, trip):
    token = issue_token(trip["chen"])

    with client.websocket_connect(f"/ws/collaboration?token={token}") as ws:
        ws.send_json({"type": "join-room", "data": {"itineraryId": trip["itinerary"]}})
        assert ws.receive_json() == {
            "type": "error",
            "data": {"message": "Access denied to this itinerary"},
        }


def test_malformed_messages_get_error_replies(client: TestClient, trip):
    token = issue_token(trip["asha"])

    with client.websocket_connect(f"/ws/collaboration?token={token}") as ws:
        ws.send_text("{not json")
        assert ws.receive_json() == {"type": "error", "data": {"message": "Invalid message format"}}

        ws.send_json({"type": "teleport", "data": {}})
        assert ws.receive_json() == {"type": "error", "data": {"message": "Unsupported event type"}}

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_binary_frame_is_rejected_without_closing_the_socket(client: TestClient, trip):
    token = issue_token(trip["asha"])

    with client.websocket_connect(f"/ws/collaboration?token={token}") as ws:
        ws.send_bytes(b"\x00\x01")
        assert next_event(ws) == {"type": "error", "data": {"message": "Invalid message format"}}

        ws.send_json({"type": "join-room", "data": {"itineraryId": trip["itinerary"]}})
        assert next_event(ws) == {"type": "current-editors", "data": []}


def test_online_status_follows_connections(client: TestClient, trip):
    user_id = trip["ben"].id
    token = issue_token(trip["ben"])
    headers = auth_headers(issue_token(trip["asha"]))

    assert client.get(f"/api/realtime/users/{user_id}/online", headers=headers).json() == {
        "user_id": user_id,
        "online": False,
    }

    with client.websocket_connect(f"/ws/collaboration?token={token}") as ws:
        ws.send_json({"type": "ping"})
        assert next_event(ws) == {"type": "pong"}

        online = client.get(f"/api/realtime/users/{user_id}/online", headers=headers)
        assert online.json()["online"] is True
        status = client.get("/api/realtime/status", headers=headers).json()
        assert status["online_users"] == 1

    online = client.get(f"/api/realtime/users/{user_id}/online", headers=headers)
    assert online.json()["online"] is False


@pytest.mark.parametrize("path", ["/api/realtime/status", "/api/realtime/users/1/online"])
def test_presence_endpoints_require_authentication(client: TestClient, path: str):
    response = client.get(path)

    assert response.status_code == 401


def test_editors_endpoint_requires_access(client: TestClient, trip):
    itinerary_id = trip["itinerary"]

    response = client.get(f"/api/realtime/itineraries/{itinerary_id}/editors")
    assert response.status_code == 401

    response = client.get(
        f"/api/realtime/itineraries/{itinerary_id}/editors",
        headers=auth_headers(issue_token(trip["chen"])),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied to this itinerary"


def test_metrics_endpoint_exposes_realtime_series(client: TestClient):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    body = response.text
    assert "# TYPE realtime_active_connections gauge" in body
    assert "# TYPE realtime_events_total counter" in body


def test_health_endpoint(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
