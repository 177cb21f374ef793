from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.quill.db import db_session
from app.quill.flashing import flash_errors, flash_old_input
from app.quill.models import User
from app.quill.modules.posts.models import Comment, Post
from app.quill.modules.posts.service import (
    add_comment,
    create_post,
    delete_comment,
    delete_post,
    get_post,
    list_posts,
    update_post,
)
from app.quill.rbac import require_permission, user_has_permission
from app.quill.resources import register_resource
from app.quill.validation import ValidationError

bp = Blueprint("posts", __name__)
comments_bp = Blueprint("comments", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_post_or_404(post_id: int) -> Post:
    post = get_post(db_session(), post_id)
    if not post:
        abort(404)
    return post


class PostController:
    # ---------- List ----------
    @staticmethod
    def index():
        s = db_session()
        search = (request.args.get("q") or "").strip()
        page = request.args.get("page", 1, type=int)
        per_page = current_app.config.get("POSTS_PER_PAGE", 10)

        result = list_posts(s, search=search, page=page, per_page=per_page)

        # Jinja cannot splat **kwargs in url_for; precompute pagination URLs here.
        def build_url(p: int) -> str:
            args = dict(request.args)
            args["page"] = p
            return url_for("posts.index", **args)

        return render_template("posts/index.html", page=result, search=search, build_url=build_url)

    # ---------- New ----------
    @staticmethod
    @require_permission("posts.create")
    def create():
        return render_template("posts/create.html")

    @staticmethod
    @require_permission("posts.create")
    def store():
        s = db_session()
        u = _current_user()
        try:
            post = create_post(s, request.form, u)
        except ValidationError as e:
            s.rollback()
            flash_errors(e.errors)
            flash_old_input(request.form)
            return redirect(url_for("posts.create"))
        s.commit()

        flash("Post created.", "success")
        return redirect(url_for("posts.show", post_id=post.id))

    # ---------- Detail ----------
    @staticmethod
    def show(post_id: int):
        post = _get_post_or_404(post_id)
        user = getattr(g, "current_user", None)
        return render_template(
            "posts/show.html",
            post=post,
            can_comment=user_has_permission(user, "comments.create"),
            can_delete_comments=user_has_permission(user, "comments.delete"),
        )

    # ---------- Edit ----------
    @staticmethod
    @require_permission("posts.edit")
    def edit(post_id: int):
        post = _get_post_or_404(post_id)
        return render_template("posts/edit.html", post=post)

    @staticmethod
    @require_permission("posts.edit")
    def update(post_id: int):
        s = db_session()
        u = _current_user()
        post = _get_post_or_404(post_id)
        try:
            update_post(s, post, request.form, u)
        except ValidationError as e:
            s.rollback()
            flash_errors(e.errors)
            flash_old_input(request.form)
            return redirect(url_for("posts.edit", post_id=post_id))
        s.commit()

        flash("Post updated.", "success")
        return redirect(url_for("posts.show", post_id=post_id))

    # ---------- Delete ----------
    @staticmethod
    @require_permission("posts.delete")
    def destroy(post_id: int):
        s = db_session()
        u = _current_user()
        post = _get_post_or_404(post_id)
        delete_post(s, post, u)
        s.commit()

        flash("Post deleted.", "success")
        return redirect(url_for("posts.index"))


register_resource(bp, "posts", PostController, param="post_id")


# ---------- Comments ----------
@comments_bp.post("/posts/<int:post_id>/comments")
@require_permission("comments.create")
def comment_store(post_id: int):
    s = db_session()
    u = _current_user()
    post = _get_post_or_404(post_id)
    try:
        add_comment(s, post, request.form, u)
    except ValidationError as e:
        s.rollback()
        flash_errors(e.errors)
        flash_old_input(request.form)
        return redirect(url_for("posts.show", post_id=post_id))
    s.commit()

    flash("Comment added.", "success")
    return redirect(url_for("posts.show", post_id=post_id))


@comments_bp.delete("/posts/<int:post_id>/comments/<int:comment_id>")
@require_permission("comments.delete")
def comment_destroy(post_id: int, comment_id: int):
    s = db_session()
    u = _current_user()
    comment = s.get(Comment, comment_id)
    if not comment or comment.post_id != post_id:
        abort(404)
    delete_comment(s, comment, u)
    s.commit()

    flash("Comment deleted.", "success")
    return redirect(url_for("posts.show", post_id=post_id))
