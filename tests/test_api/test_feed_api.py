"""
Tests for posts, moods and the change feed endpoints
"""
import pytest


@pytest.fixture
def couple_id(couple, partner_a, partner_b, login):
    login("alex@example.com")
    return couple.id


def test_post_like_comment_reply(client, couple_id, partner_a):
    created = client.post("/api/v1/posts", json={"content": "First date spot", "imageUrls": ["https://img/a.jpg"]})
    assert created.status_code == 201
    post = created.json()
    assert post["author"]["full_name"] == "Alex"
    assert post["image_url"] == "https://img/a.jpg"

    liked = client.post(f"/api/v1/posts/{post['id']}/like").json()
    assert liked["liked"] is True
    assert liked["likes_count"] == 1
    assert liked["post"]["metadata"]["likes"] == [partner_a.id]

    comment = client.post(f"/api/v1/posts/{post['id']}/comments", json={"content": "remember this?"})
    assert comment.status_code == 201
    comment_id = comment.json()["comment"]["id"]

    reply = client.post(f"/api/v1/posts/{post['id']}/comments/{comment_id}/replies", json={"content": "always"})
    assert reply.json()["comments_count"] == 2

    page = client.get("/api/v1/posts", params={"coupleId": couple_id}).json()
    assert page["next_cursor"] is None
    assert page["posts"][0]["metadata"]["comments_count"] == 2


def test_empty_post_and_empty_comment(client, couple_id):
    assert client.post("/api/v1/posts", json={"content": "  "}).status_code == 400

    post = client.post("/api/v1/posts", json={"content": "hi"}).json()
    assert client.post(f"/api/v1/posts/{post['id']}/comments", json={"content": ""}).status_code == 400


def test_partner_cannot_delete_my_post(client, couple_id, login):
    post = client.post("/api/v1/posts", json={"content": "mine"}).json()

    login("sam@example.com")
    assert client.delete(f"/api/v1/posts/{post['id']}").status_code == 403
    assert client.get(f"/api/v1/posts/{post['id']}").status_code == 200


def test_moods_today(client, couple_id, login):
    submitted = client.post("/api/v1/moods/today", json={"moodEmoji": "🥰", "message": "see you tonight"})
    assert submitted.status_code == 200
    assert submitted.json()["metadata"] == {"message": "see you tonight"}

    login("sam@example.com")
    client.put("/api/v1/moods/today/message", json={"message": "can't wait"})

    moods = client.get("/api/v1/moods/today", params={"coupleId": couple_id}).json()
    assert sorted(m["mood_emoji"] for m in moods) == sorted(["🥰", "❤️"])


def test_changes_poll(client, couple_id):
    start = client.get("/api/v1/changes/cursor", params={"coupleId": couple_id}).json()["cursor"]

    client.post("/api/v1/posts", json={"content": "ping"})
    client.post("/api/v1/transactions", json={"coupleId": couple_id, "amount": "3", "category": "Tea", "payer": "HIS"})

    batch = client.get("/api/v1/changes", params={"coupleId": couple_id, "after": start}).json()
    assert [e["event_type"] for e in batch["events"]] == ["post_created", "transaction_created"]

    again = client.get("/api/v1/changes", params={"coupleId": couple_id, "after": batch["cursor"]}).json()
    assert again["events"] == []
