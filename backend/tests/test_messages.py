"""Tests for the message relay."""
from radr.models.message import RadrMessage
from tests.conftest import create_test_group, create_test_user


def _post(client, headers, group_id, content):
    return client.post(f"/api/radr/groups/{group_id}/messages", headers=headers, json={"content": content})


class TestPostMessage:

    def test_content_is_stored_opaquely(self, client, db):
        alice = create_test_user(db, "alice", name="Alice")
        group = create_test_group(client, alice["headers"])
        resp = _post(client, alice["headers"], group["group_id"], "bm9uY2U=:Y2lwaGVy")
        assert resp.status_code == 201
        body = resp.json()
        assert body["content"] == "bm9uY2U=:Y2lwaGVy"
        assert body["type"] == "text"
        assert body["username"] == "alice"
        assert body["name"] == "Alice"
        assert body["metadata"] == {}
        assert "encryption_key" not in body

    def test_blank_content_rejected(self, client, db):
        alice = create_test_user(db, "alice")
        group = create_test_group(client, alice["headers"])
        assert _post(client, alice["headers"], group["group_id"], "   ").status_code == 400
        assert client.post(f"/api/radr/groups/{group['group_id']}/messages", headers=alice["headers"], json={}).status_code == 400
        assert db.query(RadrMessage).count() == 0

    def test_non_member_cannot_post(self, client, db):
        alice = create_test_user(db, "alice")
        mallory = create_test_user(db, "mallory")
        group = create_test_group(client, alice["headers"])
        assert _post(client, mallory["headers"], group["group_id"], "a:b").status_code == 403

    def test_unknown_group(self, client, db):
        alice = create_test_user(db, "alice")
        assert _post(client, alice["headers"], "missing", "a:b").status_code == 404

    def test_other_members_are_notified_without_content(self, client, db, notifier):
        alice = create_test_user(db, "alice", name="Alice")
        bob = create_test_user(db, "bob")
        group = create_test_group(client, alice["headers"], usernames=["bob"])
        notifier.pushes.clear()
        _post(client, alice["headers"], group["group_id"], "secret:envelope")
        assert notifier.for_user(alice["user_id"]) == []
        push = notifier.for_user(bob["user_id"])[0]
        assert push["title"] == "Cafe"
        assert push["body"] == "Alice: New message"
        assert "secret" not in str(push)


class TestGetMessages:

    def test_ordered_oldest_first_with_system_messages(self, client, db):
        alice = create_test_user(db, "alice")
        bob = create_test_user(db, "bob")
        group = create_test_group(client, alice["headers"], usernames=["bob"])
        gid = group["group_id"]
        _post(client, alice["headers"], gid, "one:1")
        client.post(f"/api/radr/groups/{gid}/check-arrival", headers=bob["headers"], json={"lat": 10.0, "lng": 20.0})
        _post(client, bob["headers"], gid, "two:2")
        _post(client, alice["headers"], gid, "three:3")

        resp = client.get(f"/api/radr/groups/{gid}/messages", headers=bob["headers"])
        assert resp.status_code == 200
        messages = resp.json()
        assert [m["content"] for m in messages] == ["one:1", "bob has entered Cafe", "two:2", "three:3"]
        assert [m["type"] for m in messages] == ["text", "arrival", "text", "text"]
        assert messages[1]["metadata"] == {"country": None, "location": "Cafe"}
        ids = [m["id"] for m in messages]
        assert ids == sorted(ids)

    def test_reads_require_membership(self, client, db):
        alice = create_test_user(db, "alice")
        mallory = create_test_user(db, "mallory")
        group = create_test_group(client, alice["headers"])
        _post(client, alice["headers"], group["group_id"], "a:b")
        resp = client.get(f"/api/radr/groups/{group['group_id']}/messages", headers=mallory["headers"])
        assert resp.status_code == 403
        assert resp.json() == {"detail": "Not a member of this group"}

    def test_reads_have_no_side_effects(self, client, db):
        alice = create_test_user(db, "alice")
        group = create_test_group(client, alice["headers"])
        _post(client, alice["headers"], group["group_id"], "a:b")
        url = f"/api/radr/groups/{group['group_id']}/messages"
        assert client.get(url, headers=alice["headers"]).json() == client.get(url, headers=alice["headers"]).json()


class TestDeleteMessage:

    def test_admin_deletes(self, client, db):
        alice = create_test_user(db, "alice")
        admin = create_test_user(db, "root", is_admin=True)
        group = create_test_group(client, alice["headers"])
        first = _post(client, alice["headers"], group["group_id"], "a:1").json()
        _post(client, alice["headers"], group["group_id"], "a:2")

        assert client.delete(f"/api/radr/messages/{first['id']}", headers=admin["headers"]).status_code == 204
        remaining = client.get(f"/api/radr/groups/{group['group_id']}/messages", headers=alice["headers"]).json()
        assert [m["content"] for m in remaining] == ["a:2"]

    def test_non_admin_forbidden(self, client, db):
        alice = create_test_user(db, "alice")
        group = create_test_group(client, alice["headers"])
        message = _post(client, alice["headers"], group["group_id"], "a:1").json()
        resp = client.delete(f"/api/radr/messages/{message['id']}", headers=alice["headers"])
        assert resp.status_code == 403
        assert db.query(RadrMessage).count() == 1

    def test_missing_message(self, client, db):
        admin = create_test_user(db, "root", is_admin=True)
        assert client.delete("/api/radr/messages/9999", headers=admin["headers"]).status_code == 404
