"""
Integration tests for the Session API and relay socket

Tests endpoint status codes, error envelopes, bearer authentication and
real-time delivery of session events over WS /ws.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from main import app
from tests.helpers import auth_headers

pytestmark = pytest.mark.integration


@pytest.fixture
def client(reset_db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def friends(make_user, befriend):
    ada = await make_user("Ada")
    ben = await make_user("Ben")
    await befriend(ada, ben)
    return ada, ben


class TestAuthentication:

    def test_missing_token(self, client):
        response = client.get(f"/api/session/count/{uuid.uuid4()}")

        assert response.status_code == 401
        assert response.json()["detail"]["error"]["code"] == "AUTH_001"

    def test_unknown_token(self, client):
        response = client.get(
            f"/api/session/count/{uuid.uuid4()}",
            headers={"Authorization": "Bearer not-a-real-token"},
        )

        assert response.status_code == 401
        assert response.json()["detail"]["error"]["code"] == "AUTH_002"

    @pytest.mark.asyncio
    async def test_inactive_user(self, client, make_user):
        ghost = await make_user("Ghost", is_active=False)

        response = client.get(f"/api/session/count/{uuid.uuid4()}", headers=auth_headers(ghost))

        assert response.status_code == 403
        assert response.json()["detail"]["error"]["code"] == "AUTH_004"


class TestSessionEndpoints:

    @pytest.mark.asyncio
    async def test_full_cycle(self, client, friends):
        ada, ben = friends

        response = client.post("/api/session/start", json={"friend_id": str(ben.id)}, headers=auth_headers(ada))
        assert response.status_code == 201
        session = response.json()["session"]
        assert session["status"] == "active"
        assert set(session["participants"]) == {str(ada.id), str(ben.id)}

        response = client.get(f"/api/session/active/{ada.id}", headers=auth_headers(ben))
        assert response.status_code == 200
        assert response.json()["session"]["id"] == session["id"]

        response = client.post(f"/api/session/{session['id']}/end", headers=auth_headers(ben))
        assert response.status_code == 200
        body = response.json()
        assert body["session"]["status"] == "completed"
        assert body["duration"] == body["session"]["duration_seconds"]
        assert body["session"]["ended_by"] == str(ben.id)

        response = client.post(
            f"/api/session/{session['id']}/feedback",
            json={"feedback_id": None},
            headers=auth_headers(ada),
        )
        assert response.status_code == 200
        assert response.json()["session"]["feedback_pending"] == [str(ben.id)]

        response = client.get(f"/api/session/count/{ben.id}", headers=auth_headers(ada))
        assert response.json() == {"session_count": 1, "can_start_new_session": True, "max_sessions": 5}

        response = client.get(f"/api/session/history/{ben.id}", headers=auth_headers(ada))
        assert [s["id"] for s in response.json()["sessions"]] == [session["id"]]

    @pytest.mark.asyncio
    async def test_start_without_friendship(self, client, make_user):
        ada = await make_user("Ada")
        cy = await make_user("Cy")

        response = client.post("/api/session/start", json={"friend_id": str(cy.id)}, headers=auth_headers(ada))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_second_start_returns_existing(self, client, friends):
        ada, ben = friends
        first = client.post("/api/session/start", json={"friend_id": str(ben.id)}, headers=auth_headers(ada))

        response = client.post("/api/session/start", json={"friend_id": str(ada.id)}, headers=auth_headers(ben))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "CONFLICT"
        assert error["details"]["session"]["id"] == first.json()["session"]["id"]

    @pytest.mark.asyncio
    async def test_no_active_session(self, client, friends):
        ada, ben = friends

        response = client.get(f"/api/session/active/{ben.id}", headers=auth_headers(ada))

        assert response.status_code == 404
        assert response.json()["error"] == {
            "code": "NOT_FOUND",
            "message": "No active session",
            "details": None,
        }

    @pytest.mark.asyncio
    async def test_double_end(self, client, friends):
        ada, ben = friends
        session_id = client.post(
            "/api/session/start", json={"friend_id": str(ben.id)}, headers=auth_headers(ada)
        ).json()["session"]["id"]
        client.post(f"/api/session/{session_id}/end", headers=auth_headers(ada))

        response = client.post(f"/api/session/{session_id}/end", headers=auth_headers(ben))

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Session already ended"

    @pytest.mark.asyncio
    async def test_end_by_outsider(self, client, friends, make_user):
        ada, ben = friends
        cy = await make_user("Cy")
        session_id = client.post(
            "/api/session/start", json={"friend_id": str(ben.id)}, headers=auth_headers(ada)
        ).json()["session"]["id"]

        response = client.post(f"/api/session/{session_id}/end", headers=auth_headers(cy))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_end_unknown_session(self, client, friends):
        ada, _ = friends

        response = client.post(f"/api/session/{uuid.uuid4()}/end", headers=auth_headers(ada))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_request_before_first_session(self, client, friends):
        ada, ben = friends

        response = client.post("/api/session/request", json={"friend_id": str(ben.id)}, headers=auth_headers(ada))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_body(self, client, friends):
        ada, _ = friends

        response = client.post("/api/session/start", json={"friend_id": "nope"}, headers=auth_headers(ada))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestRelaySocket:

    def test_bad_token_rejected(self, client):
        from starlette.websockets import WebSocketDisconnect

        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws?token=bogus") as ws:
                ws.receive_json()

    @pytest.mark.asyncio
    async def test_peer_receives_session_events(self, client, friends):
        ada, ben = friends

        with client.websocket_connect(f"/ws?token={ben.api_token}") as ws:
            assert ws.receive_json() == {"event": "joined", "data": {"user_id": str(ben.id)}}

            session_id = client.post(
                "/api/session/start", json={"friend_id": str(ben.id)}, headers=auth_headers(ada)
            ).json()["session"]["id"]
            started = ws.receive_json()
            assert started["event"] == "sessionStarted"
            assert started["data"]["session"]["id"] == session_id

            client.post(f"/api/session/{session_id}/end", headers=auth_headers(ada))
            events = [ws.receive_json() for _ in range(3)]
            assert [e["event"] for e in events] == ["sessionEnded", "sessionEndedNotification", "notification"]
            assert events[2]["data"]["type"] == "session_feedback"

    @pytest.mark.asyncio
    async def test_send_message_over_socket(self, client, friends):
        ada, ben = friends

        with client.websocket_connect(f"/ws?token={ben.api_token}") as ben_ws:
            ben_ws.receive_json()
            with client.websocket_connect(f"/ws?token={ada.api_token}") as ada_ws:
                ada_ws.receive_json()

                ada_ws.send_json({"event": "sendMessage", "data": {"receiver_id": str(ben.id), "content": "hi Ben"}})
                ack = ada_ws.receive_json()
                assert ack["event"] == "messageSent"
                assert ack["data"]["message"]["content"] == "hi Ben"

                received = ben_ws.receive_json()
                assert received["event"] == "receiveMessage"
                assert received["data"]["sender"]["name"] == "Ada"
                assert ben_ws.receive_json()["data"]["type"] == "message"

                ada_ws.send_json({"event": "dance", "data": {}})
                assert ada_ws.receive_json()["event"] == "error"

    @pytest.mark.asyncio
    async def test_bad_frames_keep_socket_open(self, client, friends):
        ada, ben = friends

        with client.websocket_connect(f"/ws?token={ben.api_token}") as ben_ws:
            ben_ws.receive_json()
            with client.websocket_connect(f"/ws?token={ada.api_token}") as ada_ws:
                ada_ws.receive_json()

                ada_ws.send_json({"event": "typing", "data": ["not", "an", "object"]})
                assert ada_ws.receive_json() == {
                    "event": "error",
                    "data": {"error": "Frame data must be an object"},
                }

                ada_ws.send_json({"event": "typing", "data": {"is_typing": True}})
                assert ada_ws.receive_json() == {"event": "error", "data": {"error": "Invalid receiver_id"}}

                # the socket still works after the rejected frames
                ada_ws.send_json({"event": "typing", "data": {"receiver_id": str(ben.id), "is_typing": True}})
                typing = ben_ws.receive_json()
                assert typing["event"] == "userTyping"
                assert typing["data"] == {"sender_id": str(ada.id), "is_typing": True}


class TestDirectoryEndpoints:

    @pytest.mark.asyncio
    async def test_users_directory(self, client, make_user):
        ada = await make_user("Ada", offers=["Rust"], wants=["Guitar"], reputation=3)
        ben = await make_user("Ben", offers=["Guitar", "Rust"], wants=["Chess"], reputation=8)

        response = client.get("/api/users", params={"search": "rust", "limit": 1}, headers=auth_headers(ada))
        assert response.status_code == 200
        body = response.json()
        assert [u["id"] for u in body["users"]] == [str(ben.id)]
        assert body["pagination"] == {
            "current_page": 1,
            "total_pages": 2,
            "total_users": 2,
            "has_next": True,
            "has_prev": False,
        }

        response = client.get("/api/users/skills/popular", headers=auth_headers(ada))
        assert response.json()["skills"][0] == {"skill": "Rust", "count": 2}

        response = client.get("/api/users/skills/search", params={"skill": "chess", "type": "looking_for"},
                              headers=auth_headers(ada))
        assert [u["id"] for u in response.json()["users"]] == [str(ben.id)]

        response = client.get("/api/users/skills/search", headers=auth_headers(ada))
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Skill parameter is required"

        response = client.get(f"/api/users/{ben.id}", headers=auth_headers(ada))
        assert response.json()["user"]["name"] == "Ben"

        response = client.get(f"/api/users/{uuid.uuid4()}", headers=auth_headers(ada))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_profile_update(self, client, make_user):
        ada = await make_user("Ada")
        ben = await make_user("Ben")

        response = client.put(f"/api/users/{ada.id}", json={"bio": "Hello", "skills_looking_for": ["Go"]},
                              headers=auth_headers(ada))
        assert response.status_code == 200
        assert response.json()["user"]["bio"] == "Hello"
        assert response.json()["user"]["skills_looking_for"] == ["Go"]

        response = client.put(f"/api/users/{ada.id}", json={"name": "Ben was here"}, headers=auth_headers(ben))
        assert response.status_code == 403

        response = client.put(f"/api/users/{ada.id}", json={"name": "A"}, headers=auth_headers(ada))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_suggestions_and_chat_delete(self, client, make_user):
        ada = await make_user("Ada", offers=["Python"], wants=["Guitar"])
        ben = await make_user("Ben", offers=["Guitar"], wants=[])
        cy = await make_user("Cy", offers=[], wants=[])

        response = client.get("/api/friends/suggestions", headers=auth_headers(ada))
        assert [u["id"] for u in response.json()["friends"]] == [str(ben.id)]

        chat_id = client.post(
            "/api/chat/message", json={"receiver_id": str(ben.id), "content": "hi"}, headers=auth_headers(ada)
        ).json()["chat_id"]

        assert client.delete(f"/api/chat/{chat_id}", headers=auth_headers(cy)).status_code == 403
        assert client.delete(f"/api/chat/{uuid.uuid4()}", headers=auth_headers(ada)).status_code == 404

        response = client.delete(f"/api/chat/{chat_id}", headers=auth_headers(ben))
        assert response.status_code == 200
        assert response.json() == {"message": "Chat deleted successfully"}
        assert client.get("/api/chat/conversations/list", headers=auth_headers(ada)).json()["chats"] == []
