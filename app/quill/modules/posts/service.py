from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.quill.audit import record_event
from app.quill.modules.posts.models import Comment, Post
from app.quill.pagination import Page, paginate
from app.quill.validation import validate

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.quill.models import User

logger = logging.getLogger(__name__)

POST_RULES = {
    "title": "required|string|max:255",
    "body": "required|string",
}

COMMENT_RULES = {
    "author_name": "required|string|max:120",
    "body": "required|string|max:2000",
}


def _fill(obj: Post | Comment, cleaned: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Mass-assign fillable attributes; returns {field: {"old", "new"}} for changed ones."""
    changes: dict[str, dict[str, Any]] = {}
    for name in obj.fillable:
        if name not in cleaned:
            continue
        old = getattr(obj, name, None)
        new = cleaned[name]
        if old != new:
            changes[name] = {"old": old, "new": new}
            setattr(obj, name, new)
    return changes


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_posts(s: "Session", *, search: str | None = None, page: int = 1, per_page: int = 10) -> Page:
    q = s.query(Post)
    search = (search or "").strip()
    if search:
        like = f"%{_escape_like(search)}%"
        q = q.filter(or_(Post.title.ilike(like, escape="\\"), Post.body.ilike(like, escape="\\")))
    q = q.order_by(Post.created_at.desc(), Post.id.desc())
    return paginate(q, page, per_page)


def get_post(s: "Session", post_id: int) -> Post | None:
    return s.get(Post, post_id)


def create_post(s: "Session", payload: Mapping[str, Any], user: "User | None") -> Post:
    """Validate and create a post. Raises ValidationError on bad input."""
    result = validate(payload, POST_RULES)
    result.raise_for_errors()

    now = datetime.utcnow()
    post = Post(created_at=now, updated_at=now, created_by_user_id=user.id if user else None)
    _fill(post, result.cleaned)
    s.add(post)
    s.flush()

    record_event(
        s,
        actor=user,
        action="post.create",
        entity=post,
        metadata={"title": post.title},
    )
    logger.info("Post %s created", post.id)
    return post


def update_post(
    s: "Session",
    post: Post,
    payload: Mapping[str, Any],
    user: "User | None",
    *,
    partial: bool = False,
) -> Post:
    """
    Validate and apply changes. Raises ValidationError on bad input.

    With partial=True (PATCH) only the fields present in the payload are validated and assigned.
    """
    rules = {k: v for k, v in POST_RULES.items() if k in payload} if partial else POST_RULES
    result = validate(payload, rules)
    result.raise_for_errors()

    changes = _fill(post, result.cleaned)
    if not changes:
        return post

    post.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="post.update",
        entity=post,
        metadata={"title": post.title, "changes": changes},
    )
    logger.info("Post %s updated (%s)", post.id, ", ".join(sorted(changes)))
    return post


def delete_post(s: "Session", post: Post, user: "User | None") -> None:
    post_id = post.id
    record_event(
        s,
        actor=user,
        action="post.delete",
        entity=post,
        metadata={"title": post.title, "comment_count": len(post.comments)},
    )
    s.delete(post)
    s.flush()
    logger.info("Post %s deleted", post_id)


def add_comment(s: "Session", post: Post, payload: Mapping[str, Any], user: "User | None") -> Comment:
    result = validate(payload, COMMENT_RULES)
    result.raise_for_errors()

    comment = Comment(post=post, created_at=datetime.utcnow())
    _fill(comment, result.cleaned)
    s.add(comment)
    s.flush()

    record_event(
        s,
        actor=user,
        action="comment.create",
        entity=comment,
        metadata={"post_id": post.id, "author_name": comment.author_name},
    )
    return comment


def delete_comment(s: "Session", comment: Comment, user: "User | None") -> None:
    record_event(
        s,
        actor=user,
        action="comment.delete",
        entity=comment,
        metadata={"post_id": comment.post_id, "author_name": comment.author_name},
    )
    post = comment.post
    if post is not None and comment in post.comments:
        post.comments.remove(comment)
    s.delete(comment)
    s.flush()


def comment_to_dict(comment: Comment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "author_name": comment.author_name,
        "body": comment.body,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


def post_to_dict(post: Post, *, with_comments: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": post.id,
        "title": post.title,
        "body": post.body,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
        "comment_count": len(post.comments),
    }
    if with_comments:
        data["comments"] = [comment_to_dict(c) for c in post.comments]
    return data
