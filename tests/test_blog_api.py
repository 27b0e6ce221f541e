"""Tests for the blog and like endpoints."""

from fastapi.testclient import TestClient


def create_post(client, payload):
    response = client.post("/api/blog", json=payload)
    assert response.status_code == 201
    return response.json()


def like(client, post_id, session_id=None):
    body = {"sessionId": session_id} if session_id else {}
    return client.post(f"/api/blog/{post_id}/like", json=body)


def unlike(client, post_id, session_id=None):
    body = {"sessionId": session_id} if session_id else {}
    return client.request("DELETE", f"/api/blog/{post_id}/like", json=body)


# ---- Blog CRUD ----
def test_create_blog_post(client, post_payload):
    post = create_post(client, post_payload)
    assert post["likes"] == 0
    assert post["published"] is True
    assert post["imageUrl"] is None
    assert post["readTime"] == "5 min"
    assert post["createdAt"] == post["updatedAt"]


def test_create_blog_post_ignores_client_likes(client, post_payload):
    post = create_post(client, {**post_payload, "likes": 77})
    assert post["likes"] == 0


def test_create_blog_post_validation_error(client, storage):
    response = client.post("/api/blog", json={"title": "Sem conteúdo"})
    assert response.status_code == 400
    body = response.json()
    assert body["type"] == "validation_error"
    fields = {detail["field"] for detail in body["details"]}
    assert {"content", "excerpt", "category", "readTime"} <= fields
    assert storage.list_blog_posts() == []


def test_create_blog_post_malformed_json(client):
    response = client.post(
        "/api/blog", content="{not json", headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_get_blog_post(client, post_payload):
    post = create_post(client, post_payload)
    response = client.get(f"/api/blog/{post['id']}")
    assert response.status_code == 200
    assert response.json() == post


def test_get_missing_blog_post(client):
    response = client.get("/api/blog/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"] == "Blog post not found"


def test_list_blog_posts_by_category(client, post_payload):
    civil = create_post(client, post_payload)
    labour = create_post(client, {**post_payload, "category": "Direito do Trabalho"})
    create_post(client, {**post_payload, "published": False})

    response = client.get("/api/blog")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [labour["id"], civil["id"]]

    response = client.get("/api/blog", params={"category": "Direito Civil"})
    assert [p["id"] for p in response.json()] == [civil["id"]]


def test_update_blog_post(client, post_payload):
    post = create_post(client, post_payload)
    response = client.put(f"/api/blog/{post['id']}", json={"title": "Novo título", "likes": 500})
    assert response.status_code == 200
    updated = response.json()
    assert updated["title"] == "Novo título"
    assert updated["content"] == "C"
    assert updated["likes"] == 0
    assert updated["id"] == post["id"]
    assert updated["createdAt"] == post["createdAt"]
    assert updated["updatedAt"] != post["updatedAt"]


def test_empty_update_bumps_updated_at(client, post_payload):
    post = create_post(client, post_payload)
    response = client.put(f"/api/blog/{post['id']}", json={})
    assert response.status_code == 200
    assert response.json()["updatedAt"] != post["updatedAt"]


def test_update_blog_post_rejects_bad_fields(client, post_payload):
    post = create_post(client, post_payload)
    response = client.put(f"/api/blog/{post['id']}", json={"title": None})
    assert response.status_code == 400
    assert client.get(f"/api/blog/{post['id']}").json()["title"] == "T"


def test_update_missing_blog_post(client):
    response = client.put("/api/blog/missing", json={"title": "x"})
    assert response.status_code == 404


def test_delete_blog_post(client, post_payload):
    post = create_post(client, post_payload)
    like(client, post["id"], "s1")
    response = client.delete(f"/api/blog/{post['id']}")
    assert response.status_code == 204
    assert response.content == b""
    assert client.get(f"/api/blog/{post['id']}").status_code == 404
    assert client.get(f"/api/blog/{post['id']}/like-count").json() == {"likeCount": 0}
    assert client.delete(f"/api/blog/{post['id']}").status_code == 404


# ---- Likes ----
def test_like_roundtrip(client, post_payload):
    post = create_post(client, post_payload)
    assert post["likes"] == 0 and post["published"] is True

    response = like(client, post["id"], "s1")
    assert response.status_code == 201
    body = response.json()
    assert body["likeCount"] == 1
    assert body["like"]["postId"] == post["id"]
    assert body["like"]["sessionId"] == "s1"

    assert client.get(f"/api/blog/{post['id']}/like-count").json() == {"likeCount": 1}
    assert client.get(f"/api/blog/{post['id']}").json()["likes"] == 1

    response = unlike(client, post["id"], "s1")
    assert response.status_code == 200
    assert response.json() == {"message": "Like removed", "likeCount": 0}
    assert client.get(f"/api/blog/{post['id']}").json()["likes"] == 0


def test_duplicate_like_conflicts(client, post_payload):
    post = create_post(client, post_payload)
    assert like(client, post["id"], "s1").status_code == 201
    response = like(client, post["id"], "s1")
    assert response.status_code == 409
    assert response.json()["type"] == "conflict_error"
    assert client.get(f"/api/blog/{post['id']}/like-count").json() == {"likeCount": 1}
    assert client.get(f"/api/blog/{post['id']}").json()["likes"] == 1


def test_like_without_session_assigns_one(client, post_payload):
    post = create_post(client, post_payload)
    response = client.post(f"/api/blog/{post['id']}/like")
    assert response.status_code == 201
    session_id = response.json()["like"]["sessionId"]
    assert session_id.startswith("session_")

    status = client.get(f"/api/blog/{post['id']}/like-status", params={"sessionId": session_id})
    assert status.json() == {"liked": True, "likeCount": 1}


def test_assigned_session_is_kept_across_like_calls(client, post_payload):
    post = create_post(client, post_payload)
    first = like(client, post["id"])
    assert first.status_code == 201

    second = like(client, post["id"])
    assert second.status_code == 409
    assert client.get(f"/api/blog/{post['id']}/like-count").json() == {"likeCount": 1}

    status = client.get(f"/api/blog/{post['id']}/like-status")
    assert status.json() == {"liked": True, "likeCount": 1}

    removed = unlike(client, post["id"])
    assert removed.status_code == 200
    assert removed.json() == {"message": "Like removed", "likeCount": 0}
    assert client.get(f"/api/blog/{post['id']}").json()["likes"] == 0


def test_assigned_sessions_differ_between_clients(app, client, post_payload):
    post = create_post(client, post_payload)
    mine = like(client, post["id"]).json()["like"]["sessionId"]
    with TestClient(app) as other:
        response = like(other, post["id"])
        assert response.status_code == 201
        assert response.json()["like"]["sessionId"] != mine
        assert response.json()["likeCount"] == 2


def test_explicit_session_wins_over_assigned_one(client, post_payload):
    post = create_post(client, post_payload)
    like(client, post["id"])
    response = like(client, post["id"], "s1")
    assert response.status_code == 201
    assert response.json()["like"]["sessionId"] == "s1"
    assert response.json()["likeCount"] == 2


def test_like_missing_post(client):
    response = like(client, "missing", "s1")
    assert response.status_code == 404
    assert client.get("/api/blog/missing/like-count").json() == {"likeCount": 0}


def test_unlike_requires_session(client, post_payload):
    post = create_post(client, post_payload)
    response = unlike(client, post["id"])
    assert response.status_code == 400
    assert response.json()["error"] == "Session not found"


def test_unlike_without_like(client, post_payload):
    post = create_post(client, post_payload)
    response = unlike(client, post["id"], "nobody")
    assert response.status_code == 404
    assert client.get(f"/api/blog/{post['id']}").json()["likes"] == 0


def test_like_status(client, post_payload):
    post = create_post(client, post_payload)
    like(client, post["id"], "s1")
    url = f"/api/blog/{post['id']}/like-status"
    assert client.get(url, params={"sessionId": "s1"}).json() == {"liked": True, "likeCount": 1}
    assert client.get(url, params={"sessionId": "s2"}).json() == {"liked": False, "likeCount": 1}
    assert client.get(url).json() == {"liked": False, "likeCount": 1}


def test_like_status_for_unknown_post(client):
    response = client.get("/api/blog/missing/like-status", params={"sessionId": "s1"})
    assert response.status_code == 200
    assert response.json() == {"liked": False, "likeCount": 0}


def test_cached_and_counted_likes_agree(client, storage, post_payload):
    post = create_post(client, post_payload)
    steps = [
        ("like", "a"), ("like", "b"), ("like", "a"), ("unlike", "c"),
        ("unlike", "a"), ("like", "c"), ("unlike", "b"), ("unlike", "b"),
    ]
    for action, session_id in steps:
        if action == "like":
            like(client, post["id"], session_id)
        else:
            unlike(client, post["id"], session_id)
        cached = client.get(f"/api/blog/{post['id']}").json()["likes"]
        counted = client.get(f"/api/blog/{post['id']}/like-count").json()["likeCount"]
        assert cached == counted >= 0
    assert storage.count_blog_likes(post["id"]) == 1
