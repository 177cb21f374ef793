"""HTML controller: the seven resource actions for posts."""
import json

from conftest import CSRF

from app.quill.db import session_scope
from app.quill.models import AuditEvent
from app.quill.modules.posts.models import Comment, Post


def test_index_is_public(client, make_post):
    make_post(title="Public post")
    r = client.get("/posts")
    assert r.status_code == 200
    assert b"Public post" in r.data
    assert b"Showing 1-1 of 1" in r.data


def test_index_empty(client):
    r = client.get("/posts")
    assert r.status_code == 200
    assert b"No posts found." in r.data


def test_create_requires_login(client):
    r = client.get("/posts/create")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_create_form_renders(admin_client):
    r = admin_client.get("/posts/create")
    assert r.status_code == 200
    assert b'name="title"' in r.data


def test_store_creates_post(app, admin_client):
    r = admin_client.post(
        "/posts",
        data={"title": "  My first post ", "body": "Hello there.", "csrf_token": CSRF},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Post created." in r.data
    assert b"My first post" in r.data

    with session_scope(app) as s:
        post = s.query(Post).one()
        assert post.title == "My first post"
        assert post.created_by_user_id is not None
        ev = s.query(AuditEvent).filter(AuditEvent.action == "post.create").one()
        assert ev.entity_id == str(post.id)


def test_store_ignores_non_fillable_fields(app, admin_client):
    admin_client.post(
        "/posts",
        data={"title": "T", "body": "B", "id": "999", "created_by_user_id": "42", "csrf_token": CSRF},
    )
    with session_scope(app) as s:
        post = s.query(Post).one()
        assert post.id != 999
        assert post.created_by_user_id != 42


def test_store_validation_flashes_errors_and_old_input(app, admin_client):
    r = admin_client.post("/posts", data={"title": "Kept title", "body": "   ", "csrf_token": CSRF})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/posts/create")

    r = admin_client.get("/posts/create")
    assert b"The body field is required." in r.data
    assert b'value="Kept title"' in r.data

    # errors are shown once
    r = admin_client.get("/posts/create")
    assert b"The body field is required." not in r.data

    with session_scope(app) as s:
        assert s.query(Post).count() == 0


def test_store_title_too_long(admin_client):
    r = admin_client.post(
        "/posts",
        data={"title": "x" * 256, "body": "ok", "csrf_token": CSRF},
        follow_redirects=True,
    )
    assert b"The title may not be greater than 255 characters." in r.data


def test_store_forbidden_without_permission(reader_client):
    r = reader_client.post("/posts", data={"title": "T", "body": "B", "csrf_token": CSRF})
    assert r.status_code == 403
    assert b"posts.create" in r.data


def test_show(client, make_post):
    post_id = make_post(title="Show me", body="Body text here")
    r = client.get(f"/posts/{post_id}")
    assert r.status_code == 200
    assert b"Show me" in r.data
    assert b"Body text here" in r.data


def test_show_missing_is_404(client):
    assert client.get("/posts/12345").status_code == 404


def test_edit_form_prefilled(admin_client, make_post):
    post_id = make_post(title="Editable")
    r = admin_client.get(f"/posts/{post_id}/edit")
    assert r.status_code == 200
    assert b'value="Editable"' in r.data
    assert b"_method=PUT" in r.data


def test_update_with_put(app, admin_client, make_post):
    post_id = make_post(title="Before", body="Old body")
    r = admin_client.put(
        f"/posts/{post_id}",
        data={"title": "After", "body": "Old body", "csrf_token": CSRF},
    )
    assert r.status_code == 302

    with session_scope(app) as s:
        post = s.get(Post, post_id)
        assert post.title == "After"
        ev = s.query(AuditEvent).filter(AuditEvent.action == "post.update").one()
        meta = json.loads(ev.metadata_json)
        assert meta["changes"] == {"title": {"old": "Before", "new": "After"}}


def test_update_via_method_override(app, admin_client, make_post):
    post_id = make_post(title="Before")
    r = admin_client.post(
        f"/posts/{post_id}?_method=PATCH",
        data={"title": "Overridden", "body": "b", "csrf_token": CSRF},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Post updated." in r.data
    with session_scope(app) as s:
        assert s.get(Post, post_id).title == "Overridden"


def test_update_without_changes_records_nothing(app, admin_client, make_post):
    post_id = make_post(title="Same", body="Same body")
    admin_client.put(f"/posts/{post_id}", data={"title": "Same", "body": "Same body", "csrf_token": CSRF})
    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "post.update").count() == 0


def test_update_validation_redirects_back_to_edit(app, admin_client, make_post):
    post_id = make_post(title="Keep")
    r = admin_client.put(f"/posts/{post_id}", data={"title": "", "body": "b", "csrf_token": CSRF})
    assert r.status_code == 302
    assert r.headers["Location"].endswith(f"/posts/{post_id}/edit")
    r = admin_client.get(f"/posts/{post_id}/edit")
    assert b"The title field is required." in r.data
    with session_scope(app) as s:
        assert s.get(Post, post_id).title == "Keep"


def test_update_missing_is_404(admin_client):
    r = admin_client.put("/posts/999", data={"title": "a", "body": "b", "csrf_token": CSRF})
    assert r.status_code == 404


def test_destroy_removes_post_and_comments(app, admin_client, make_post):
    post_id = make_post()
    with session_scope(app) as s:
        s.add(Comment(post_id=post_id, author_name="Ann", body="Nice"))

    r = admin_client.post(f"/posts/{post_id}?_method=DELETE", data={"csrf_token": CSRF}, follow_redirects=True)
    assert r.status_code == 200
    assert b"Post deleted." in r.data

    with session_scope(app) as s:
        assert s.get(Post, post_id) is None
        assert s.query(Comment).count() == 0
        assert s.query(AuditEvent).filter(AuditEvent.action == "post.delete").count() == 1


def test_destroy_forbidden_for_reader(reader_client, make_post):
    post_id = make_post()
    r = reader_client.delete(f"/posts/{post_id}", data={"csrf_token": CSRF})
    assert r.status_code == 403


def test_plain_post_to_member_is_not_allowed(admin_client, make_post):
    post_id = make_post()
    r = admin_client.post(f"/posts/{post_id}", data={"csrf_token": CSRF})
    assert r.status_code == 405


def test_index_pagination(make_app):
    app = make_app(POSTS_PER_PAGE="2")
    with session_scope(app) as s:
        for i in range(5):
            s.add(Post(title=f"Post {i}", body="b"))
    client = app.test_client()

    r = client.get("/posts")
    assert b"Showing 1-2 of 5" in r.data
    assert b"Page 1 of 3" in r.data

    r = client.get("/posts?page=3")
    assert b"Showing 5-5 of 5" in r.data


def test_index_search(client, make_post):
    make_post(title="Flask tips", body="Blueprints")
    make_post(title="Cooking", body="Pasta")
    r = client.get("/posts?q=flask")
    assert b"Flask tips" in r.data
    assert b"Cooking" not in r.data


def test_index_page_beyond_range_shows_last_page(make_app):
    app = make_app(POSTS_PER_PAGE="2")
    with session_scope(app) as s:
        for i in range(3):
            s.add(Post(title=f"Post {i}", body="b"))
    r = app.test_client().get("/posts?page=99999999999999999999")
    assert r.status_code == 200
    assert b"Page 2 of 2" in r.data


def test_index_search_treats_wildcards_literally(client, make_post):
    make_post(title="snake_case names")
    make_post(title="snakeXcase names")
    r = client.get("/posts?q=snake_case")
    assert b"snake_case names" in r.data
    assert b"snakeXcase names" not in r.data
