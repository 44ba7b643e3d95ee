from datetime import datetime

from fastapi.testclient import TestClient
from faker import Faker

from beyond_theory.models.message import Message

fake = Faker()


class TestMessageSending:
    """Appending messages to conversations."""

    def test_send_message_success(self, client: TestClient, conversation, user_one):
        response = client.post("/messages", json={
            "conversationId": conversation["id"],
            "text": "hello",
            "userId": user_one.uid
        })

        assert response.status_code == 201
        data = response.json()
        assert data["conversationId"] == conversation["id"]
        assert data["userId"] == user_one.uid
        assert data["text"] == "hello"
        assert data["replyTo"] is None
        assert data["resourceLinks"] == []
        assert isinstance(data["id"], str)
        # Server-assigned ISO-8601 timestamp
        assert data["createdAt"].endswith("Z")
        assert datetime.fromisoformat(data["createdAt"].replace("Z", "+00:00")).tzinfo is not None

    def test_send_with_reply_and_resource_links(self, client: TestClient, conversation, user_one, user_two, helpers):
        original = helpers.send(client, conversation["id"], user_one.uid, "see this")

        reply = helpers.send(
            client, conversation["id"], user_two.uid, "thanks",
            replyTo=original["id"], resourceLinks=["res-1", "res-2"]
        )

        assert reply["replyTo"] == original["id"]
        assert reply["resourceLinks"] == ["res-1", "res-2"]

    def test_reply_to_unknown_message_is_kept(self, client: TestClient, conversation, user_one, helpers):
        reply = helpers.send(client, conversation["id"], user_one.uid, replyTo="missing-id")

        assert reply["replyTo"] == "missing-id"

    def test_send_empty_text(self, client: TestClient, conversation, user_one, helpers):
        response = client.post("/messages", json={
            "conversationId": conversation["id"], "text": "   ", "userId": user_one.uid
        })

        helpers.assert_error_response(response, 400, "empty")

    def test_send_missing_fields(self, client: TestClient, conversation):
        response = client.post("/messages", json={"conversationId": conversation["id"], "text": "hi"})

        assert response.status_code == 400
        assert "userId" in response.text

    def test_send_too_long(self, client: TestClient, conversation, user_one):
        response = client.post("/messages", json={
            "conversationId": conversation["id"], "text": "x" * 5001, "userId": user_one.uid
        })

        assert response.status_code == 400

    def test_send_to_unknown_conversation(self, client: TestClient, user_one):
        response = client.post("/messages", json={
            "conversationId": "nope", "text": "hi", "userId": user_one.uid
        })

        assert response.status_code == 404

    def test_non_participant_cannot_post(self, client: TestClient, conversation, user_three):
        response = client.post("/messages", json={
            "conversationId": conversation["id"], "text": "intruder", "userId": user_three.uid
        })

        assert response.status_code == 403

    def test_anyone_can_post_to_public(self, client: TestClient, user_three, helpers):
        message = helpers.send(client, "public", user_three.uid, "hi all")

        assert message["conversationId"] == "public"

    def test_special_and_unicode_content(self, client: TestClient, conversation, user_one, helpers):
        content = "Hello 世界! 🌍 @#$%^&*()_+-=[]{}|;':\",./<>?"

        message = helpers.send(client, conversation["id"], user_one.uid, content)

        assert message["text"] == content


class TestMessageRetrieval:

    def test_requires_conversation_id(self, client: TestClient):
        response = client.get("/messages")

        assert response.status_code == 400

    def test_unknown_conversation_is_empty(self, client: TestClient):
        response = client.get("/messages", params={"conversationId": "nope"})

        assert response.status_code == 200
        assert response.json() == []

    def test_messages_in_creation_order(self, client: TestClient, conversation, user_one, user_two, helpers):
        sent = [
            helpers.send(client, conversation["id"], user_one.uid, "one"),
            helpers.send(client, conversation["id"], user_two.uid, "two"),
            helpers.send(client, conversation["id"], user_one.uid, "three"),
        ]

        data = client.get("/messages", params={"conversationId": conversation["id"]}).json()

        assert [m["id"] for m in data] == [m["id"] for m in sent]
        stamps = [datetime.fromisoformat(m["createdAt"].replace("Z", "+00:00")) for m in data]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 3

    def test_since_returns_strictly_newer(self, client: TestClient, conversation, user_one, helpers):
        first = helpers.send(client, conversation["id"], user_one.uid, "one")
        second = helpers.send(client, conversation["id"], user_one.uid, "two")
        third = helpers.send(client, conversation["id"], user_one.uid, "three")

        data = client.get("/messages", params={
            "conversationId": conversation["id"],
            "since": first["createdAt"]
        }).json()

        assert [m["id"] for m in data] == [second["id"], third["id"]]

    def test_since_echoed_back_in_raw_query(self, client: TestClient, conversation, user_one, helpers):
        first = helpers.send(client, conversation["id"], user_one.uid, "one")
        second = helpers.send(client, conversation["id"], user_one.uid, "two")

        # Clients paste the timestamp into the URL without encoding it
        response = client.get(f"/messages?conversationId={conversation['id']}&since={first['createdAt']}")

        assert response.status_code == 200
        assert [m["id"] for m in response.json()] == [second["id"]]

    def test_since_latest_returns_nothing(self, client: TestClient, conversation, user_one, helpers):
        helpers.send(client, conversation["id"], user_one.uid)
        latest = helpers.send(client, conversation["id"], user_one.uid)

        data = client.get("/messages", params={
            "conversationId": conversation["id"],
            "since": latest["createdAt"],
            "lastId": latest["id"]
        }).json()

        assert data == []

    def test_last_id_breaks_timestamp_ties(self, client: TestClient, db_session, conversation, user_one):
        stamp = datetime(2026, 1, 1, 12, 0, 0)
        for message_id in ("a", "b", "c"):
            db_session.add(Message(
                id=message_id,
                conversation_id=conversation["id"],
                user_id=user_one.uid,
                text=message_id,
                created_at=stamp
            ))
        db_session.commit()

        data = client.get("/messages", params={
            "conversationId": conversation["id"],
            "since": "2026-01-01T12:00:00+00:00",
            "lastId": "a"
        }).json()

        assert [m["id"] for m in data] == ["b", "c"]

    def test_invalid_since(self, client: TestClient, conversation):
        response = client.get("/messages", params={
            "conversationId": conversation["id"], "since": "yesterday-ish"
        })

        assert response.status_code == 400


class TestMessageDeletion:

    def test_author_can_delete(self, client: TestClient, conversation, user_one, helpers):
        message = helpers.send(client, conversation["id"], user_one.uid)

        response = client.delete("/messages", params={
            "conversationId": conversation["id"],
            "messageId": message["id"],
            "userId": user_one.uid
        })

        assert response.status_code == 200
        assert response.text == "Message deleted successfully"
        remaining = client.get("/messages", params={"conversationId": conversation["id"]}).json()
        assert message["id"] not in [m["id"] for m in remaining]

    def test_other_user_cannot_delete(self, client: TestClient, conversation, user_one, user_two, helpers):
        message = helpers.send(client, conversation["id"], user_one.uid)

        response = client.delete("/messages", params={
            "conversationId": conversation["id"],
            "messageId": message["id"],
            "userId": user_two.uid
        })

        assert response.status_code == 403
        remaining = client.get("/messages", params={"conversationId": conversation["id"]}).json()
        assert [m["id"] for m in remaining] == [message["id"]]

    def test_delete_unknown_message(self, client: TestClient, conversation, user_one):
        response = client.delete("/messages", params={
            "conversationId": conversation["id"],
            "messageId": "missing",
            "userId": user_one.uid
        })

        assert response.status_code == 404

    def test_delete_missing_params(self, client: TestClient, conversation):
        response = client.delete("/messages", params={"conversationId": conversation["id"]})

        assert response.status_code == 400

    def test_delete_recomputes_last_message(self, client: TestClient, conversation, user_one, user_two, helpers):
        helpers.send(client, conversation["id"], user_one.uid, "first")
        second = helpers.send(client, conversation["id"], user_two.uid, "second")
        third = helpers.send(client, conversation["id"], user_one.uid, "third")

        client.delete("/messages", params={
            "conversationId": conversation["id"],
            "messageId": third["id"],
            "userId": user_one.uid
        })

        listed = client.get("/conversations", params={"userId": user_one.uid}).json()
        direct = next(c for c in listed if c["id"] == conversation["id"])
        assert direct["lastMessage"]["text"] == "second"
        assert direct["lastMessage"]["senderUid"] == user_two.uid
        assert direct["lastMessage"]["timestamp"] == second["createdAt"]

    def test_deleting_only_message_clears_last_message(self, client: TestClient, conversation, user_one, helpers):
        message = helpers.send(client, conversation["id"], user_one.uid)

        client.delete("/messages", params={
            "conversationId": conversation["id"],
            "messageId": message["id"],
            "userId": user_one.uid
        })

        listed = client.get("/conversations", params={"userId": user_one.uid}).json()
        direct = next(c for c in listed if c["id"] == conversation["id"])
        assert direct["lastMessage"] is None
