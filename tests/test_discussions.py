"""Tests for direct messages and their real-time broadcast."""

import pytest

from app.core.broadcast import broadcaster, discussion_channel, MESSAGE_SENT_EVENT
from app.db.schema import Role, Discussion


@pytest.fixture
def captured(monkeypatch):
    """Records every event published on any discussion channel."""
    events = []
    original = broadcaster.publish

    def spy(channel, event, payload):
        events.append((channel, event, payload))
        return original(channel, event, payload)

    monkeypatch.setattr(broadcaster, "publish", spy)
    return events


@pytest.fixture
def make_discussion(session):
    def _make(sender, recipient, content="Hello") -> Discussion:
        discussion = Discussion(
            sender_id=sender.id,
            recipient_id=recipient.id if recipient else None,
            content=content
        )
        session.add(discussion)
        session.commit()
        session.refresh(discussion)
        return discussion
    return _make


class TestSendMessage:

    def test_message_is_stored_and_broadcast(
        self, client, technician, validator, captured, headers_for
    ):
        response = client.post("/api/v1/discussions", headers=headers_for(technician),
                               json={"recipient_id": str(validator.id), "content": "Please review"})
        assert response.status_code == 201
        body = response.json()
        assert body["sender"] == {"id": str(technician.id), "name": technician.name}
        assert body["recipient"] == {"id": str(validator.id), "name": validator.name}

        assert len(captured) == 1
        channel, event, payload = captured[0]
        assert channel == f"private-discussion.{body['id']}"
        assert event == MESSAGE_SENT_EVENT
        assert payload["content"] == "Please review"
        assert payload["sender"]["name"] == technician.name
        assert payload["recipient"]["id"] == str(validator.id)
        assert set(payload) == {
            "id", "sender_id", "recipient_id", "content", "created_at", "sender", "recipient"
        }

    def test_subscribers_receive_the_event(
        self, client, technician, validator, monkeypatch, headers_for
    ):
        received = []
        original = broadcaster.publish

        # The channel id is only known at publish time
        def subscribe_then_publish(channel, event, payload):
            broadcaster.subscribe(channel, lambda e, p: received.append((e, p)))
            return original(channel, event, payload)

        monkeypatch.setattr(broadcaster, "publish", subscribe_then_publish)
        response = client.post("/api/v1/discussions", headers=headers_for(technician),
                               json={"recipient_id": str(validator.id), "content": "Ping"})

        assert response.status_code == 201
        assert len(received) == 1
        event, payload = received[0]
        assert event == "message.sent"
        assert payload["content"] == "Ping"

    def test_broken_subscriber_does_not_fail_the_request(
        self, client, technician, validator, monkeypatch, headers_for
    ):
        original = broadcaster.publish

        def explode(event, payload):
            raise RuntimeError("connection reset")

        def subscribe_broken(channel, event, payload):
            broadcaster.subscribe(channel, explode)
            return original(channel, event, payload)

        monkeypatch.setattr(broadcaster, "publish", subscribe_broken)
        response = client.post("/api/v1/discussions", headers=headers_for(technician),
                               json={"recipient_id": str(validator.id), "content": "Still here"})
        assert response.status_code == 201

    def test_message_without_recipient(self, client, technician, captured, headers_for):
        response = client.post("/api/v1/discussions", headers=headers_for(technician),
                               json={"content": "Note to self"})
        assert response.status_code == 201
        assert response.json()["recipient"] is None
        assert captured[0][2]["recipient"] is None

    def test_unknown_recipient(self, client, technician, headers_for):
        response = client.post("/api/v1/discussions", headers=headers_for(technician), json={
            "recipient_id": "00000000-0000-0000-0000-000000000000", "content": "Hello?"
        })
        assert response.status_code == 404

    def test_empty_content(self, client, technician, validator, headers_for):
        response = client.post("/api/v1/discussions", headers=headers_for(technician),
                               json={"recipient_id": str(validator.id), "content": ""})
        assert response.status_code == 422


class TestReadMessages:

    def test_list_only_own_discussions(
        self, client, admin, technician, validator, make_discussion, headers_for
    ):
        make_discussion(technician, validator, "to validator")
        make_discussion(validator, technician, "to technician")
        make_discussion(admin, validator, "not for the technician")

        response = client.get("/api/v1/discussions", headers=headers_for(technician))
        assert response.status_code == 200
        assert {d["content"] for d in response.json()} == {"to validator", "to technician"}

    def test_non_participant_is_forbidden(
        self, client, admin, technician, validator, make_discussion, headers_for
    ):
        discussion = make_discussion(technician, validator)
        response = client.get(f"/api/v1/discussions/{discussion.id}", headers=headers_for(admin))
        assert response.status_code == 403

        allowed = client.get(f"/api/v1/discussions/{discussion.id}", headers=headers_for(validator))
        assert allowed.status_code == 200

    def test_mark_as_read(self, client, session, technician, validator, make_discussion, headers_for):
        discussion = make_discussion(technician, validator)
        response = client.patch(f"/api/v1/discussions/{discussion.id}/read",
                                headers=headers_for(validator))
        assert response.status_code == 200
        session.refresh(discussion)
        assert discussion.read_at is not None

    def test_mark_as_read_ignores_outsiders(
        self, client, session, admin, technician, validator, make_discussion, headers_for
    ):
        discussion = make_discussion(technician, validator)
        client.patch(f"/api/v1/discussions/{discussion.id}/read", headers=headers_for(admin))
        session.refresh(discussion)
        assert discussion.read_at is None


class TestRecipients:

    def test_company_members_except_self(
        self, client, admin, technician, validator, make_company, make_user, headers_for
    ):
        other = make_company(name="Other", email="other@corp.com")
        make_user("outsider@other.com", Role.TECHNICIAN, other)

        response = client.get("/api/v1/discussions/recipients", headers=headers_for(technician))
        assert response.status_code == 200
        assert {r["id"] for r in response.json()} == {str(admin.id), str(validator.id)}


class TestChannelAuthorization:

    def test_participants_only(
        self, client, admin, technician, validator, make_discussion, headers_for
    ):
        discussion = make_discussion(technician, validator)
        channel = discussion_channel(discussion.id)

        for user in (technician, validator):
            response = client.post("/api/v1/discussions/channels/auth",
                                   headers=headers_for(user), json={"channel_name": channel})
            assert response.status_code == 200
            assert response.json()["authorized"] is True

        response = client.post("/api/v1/discussions/channels/auth",
                               headers=headers_for(admin), json={"channel_name": channel})
        assert response.status_code == 403

    def test_malformed_channel(self, client, technician, headers_for):
        for name in ("presence-room.1", "private-discussion.not-a-uuid",
                     "private-discussion.00000000-0000-0000-0000-000000000000"):
            response = client.post("/api/v1/discussions/channels/auth",
                                   headers=headers_for(technician), json={"channel_name": name})
            assert response.status_code == 403
