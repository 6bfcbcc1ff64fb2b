"""Direct messages between users."""

from tradejournal.models import Message

from conftest import client_for, make_user


def send(client, receiver_id, content="Hi there"):
    return client.post("/api/messages", json={"receiver_id": receiver_id, "content": content})


class TestSend:
    def test_send(self, client, user, other_user):
        response = send(client, other_user.id)
        assert response.status_code == 201
        body = response.json()
        assert body["sender_id"] == user.id
        assert body["receiver_id"] == other_user.id
        assert body["is_read"] is False
        assert body["message_type"] == "text"

    def test_cannot_message_yourself(self, client, user):
        response = send(client, user.id)
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot send a message to yourself"

    def test_blank_content(self, client, other_user):
        assert send(client, other_user.id, "   ").status_code == 400

    def test_unknown_receiver(self, client):
        assert send(client, 9999).status_code == 404

    def test_file_message(self, client, other_user):
        response = client.post("/api/messages", json={
            "receiver_id": other_user.id,
            "content": "chart attached",
            "message_type": "image",
            "file_url": "https://files/eurusd.png",
            "file_name": "eurusd.png",
        })
        assert response.json()["file_name"] == "eurusd.png"


class TestReading:
    def test_unread_count_and_mark_read(self, client, other_client, other_user, user):
        send(client, other_user.id, "one")
        send(client, other_user.id, "two")

        assert other_client.get("/api/messages/unread-count").json() == {"unread_count": 2}
        assert client.get("/api/messages/unread-count").json() == {"unread_count": 0}

        # Reading a conversation leaves it unread
        thread = other_client.get(f"/api/messages/conversations/{user.id}").json()
        assert [m["content"] for m in thread] == ["one", "two"]
        assert other_client.get("/api/messages/unread-count").json() == {"unread_count": 2}

        marked = other_client.post(f"/api/messages/conversations/{user.id}/read").json()
        assert marked == {"success": True, "updated": 2}
        assert other_client.get("/api/messages/unread-count").json() == {"unread_count": 0}

    def test_marking_own_sent_messages_changes_nothing(self, client, other_user):
        send(client, other_user.id)
        assert client.post(f"/api/messages/conversations/{other_user.id}/read").json()["updated"] == 0

    def test_conversations_latest_first(self, client, other_client, db_session, user, other_user):
        third = make_user(db_session, "third@example.com", "third")
        send(client, other_user.id, "to other")
        send(client_for(third), user.id, "from third")
        send(other_client, user.id, "reply from other")

        conversations = client.get("/api/messages/conversations").json()
        assert [c["other_user_id"] for c in conversations] == [other_user.id, third.id]
        assert conversations[0]["last_message"]["content"] == "reply from other"
        assert conversations[0]["unread_count"] == 1
        assert conversations[0]["other_user_name"] == "Other"
        assert conversations[1]["unread_count"] == 1


class TestDelete:
    def test_only_sender_deletes(self, client, other_client, other_user, db_session):
        message_id = send(client, other_user.id).json()["id"]

        response = other_client.delete(f"/api/messages/{message_id}")
        assert response.status_code == 403

        assert client.delete(f"/api/messages/{message_id}").status_code == 200
        assert db_session.query(Message).count() == 0

    def test_strangers_get_not_found(self, client, other_user, db_session):
        message_id = send(client, other_user.id).json()["id"]
        stranger = make_user(db_session, "stranger@example.com", "stranger")
        assert client_for(stranger).delete(f"/api/messages/{message_id}").status_code == 404
        assert client.delete("/api/messages/9999").status_code == 404

    def test_conversation_soft_delete(self, client, other_client, user, other_user, db_session):
        send(client, other_user.id, "one")
        send(other_client, user.id, "two")

        response = client.delete(f"/api/messages/conversations/{other_user.id}")
        assert response.json() == {"success": True, "deleted": 2}

        assert client.get(f"/api/messages/conversations/{other_user.id}").json() == []
        assert client.get("/api/messages/conversations").json() == []
        assert other_client.get("/api/messages/unread-count").json() == {"unread_count": 0}
        assert db_session.query(Message).filter(Message.deleted_at.isnot(None)).count() == 2
