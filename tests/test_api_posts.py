"""JSON resource: /api/posts."""
from conftest import CSRF

from app.quill.db import session_scope
from app.quill.modules.posts.models import Comment, Post

HEADERS = {"X-CSRF-Token": CSRF}


def test_api_index(client, make_post):
    make_post(title="One")
    make_post(title="Two")
    r = client.get("/api/posts")
    assert r.status_code == 200
    assert r.json["meta"]["total"] == 2
    assert [p["title"] for p in r.json["data"]] == ["Two", "One"]


def test_api_index_per_page(client, make_post):
    for i in range(3):
        make_post(title=f"P{i}")
    r = client.get("/api/posts?per_page=2&page=2")
    assert r.json["meta"] == {"page": 2, "per_page": 2, "total": 3, "total_pages": 2}
    assert len(r.json["data"]) == 1


def test_api_show_includes_comments(app, client, make_post):
    post_id = make_post(title="With comments")
    with session_scope(app) as s:
        s.add(Comment(post_id=post_id, author_name="Ann", body="Hi"))
    r = client.get(f"/api/posts/{post_id}")
    assert r.status_code == 200
    assert r.json["data"]["comment_count"] == 1
    assert r.json["data"]["comments"][0]["author_name"] == "Ann"


def test_api_show_missing(client):
    r = client.get("/api/posts/404")
    assert r.status_code == 404
    assert r.json["message"] == "Post not found."


def test_api_store_requires_auth(client):
    with client.session_transaction() as sess:
        sess["csrf_token"] = CSRF
    r = client.post("/api/posts", json={"title": "t", "body": "b"}, headers=HEADERS)
    assert r.status_code == 401


def test_api_anonymous_write_without_csrf_is_401(client, make_post):
    post_id = make_post()
    assert client.post("/api/posts", json={"title": "t", "body": "b"}).status_code == 401
    assert client.patch(f"/api/posts/{post_id}", json={"title": "t"}).status_code == 401
    assert client.delete(f"/api/posts/{post_id}").status_code == 401


def test_api_store_forbidden_for_reader(reader_client):
    r = reader_client.post("/api/posts", json={"title": "t", "body": "b"}, headers=HEADERS)
    assert r.status_code == 403


def test_api_store_without_csrf(admin_client):
    r = admin_client.post("/api/posts", json={"title": "t", "body": "b"})
    assert r.status_code == 400
    assert "CSRF" in r.json["message"]


def test_api_store(app, admin_client):
    r = admin_client.post("/api/posts", json={"title": "From API", "body": "JSON body"}, headers=HEADERS)
    assert r.status_code == 201
    assert r.json["data"]["title"] == "From API"
    with session_scope(app) as s:
        assert s.query(Post).count() == 1


def test_api_store_invalid(admin_client):
    r = admin_client.post("/api/posts", json={"title": 12, "body": ""}, headers=HEADERS)
    assert r.status_code == 422
    assert r.json["message"] == "The given data was invalid."
    assert r.json["errors"] == {
        "title": ["The title must be a string."],
        "body": ["The body field is required."],
    }


def test_api_put_requires_all_fields(admin_client, make_post):
    post_id = make_post()
    r = admin_client.put(f"/api/posts/{post_id}", json={"title": "Only title"}, headers=HEADERS)
    assert r.status_code == 422
    assert "body" in r.json["errors"]


def test_api_patch_is_partial(app, admin_client, make_post):
    post_id = make_post(title="Old", body="Keep me")
    r = admin_client.patch(f"/api/posts/{post_id}", json={"title": "New"}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json["data"]["title"] == "New"
    assert r.json["data"]["body"] == "Keep me"


def test_api_destroy(app, admin_client, make_post):
    post_id = make_post()
    r = admin_client.delete(f"/api/posts/{post_id}", headers=HEADERS)
    assert r.status_code == 204
    with session_scope(app) as s:
        assert s.get(Post, post_id) is None


def test_api_destroy_missing(admin_client):
    r = admin_client.delete("/api/posts/999", headers=HEADERS)
    assert r.status_code == 404


def test_api_index_huge_page_number(client, make_post):
    make_post(title="Only")
    r = client.get("/api/posts?page=99999999999999999999")
    assert r.status_code == 200
    assert r.json["meta"]["page"] == 1
    assert [p["title"] for p in r.json["data"]] == ["Only"]


def test_api_search_is_literal(client, make_post):
    make_post(title="Discount 100 off")
    make_post(title="Literal 100% match")
    make_post(title="back\\slash")
    r = client.get("/api/posts", query_string={"q": "100%"})
    assert [p["title"] for p in r.json["data"]] == ["Literal 100% match"]
    r = client.get("/api/posts", query_string={"q": "k\\s"})
    assert [p["title"] for p in r.json["data"]] == ["back\\slash"]
