from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.quill.db import db_session
from app.quill.modules.posts.service import (
    create_post,
    delete_post,
    get_post,
    list_posts,
    post_to_dict,
    update_post,
)
from app.quill.rbac import require_api_permission
from app.quill.resources import register_api_resource
from app.quill.validation import ValidationError

bp = Blueprint("posts_api", __name__)


def _not_found():
    return jsonify({"message": "Post not found."}), 404


def _invalid(e: ValidationError):
    return jsonify({"message": str(e), "errors": e.errors}), 422


def _payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


class PostApiController:
    @staticmethod
    def index():
        s = db_session()
        page = request.args.get("page", 1, type=int)
        per_page = request.args.get("per_page", current_app.config.get("POSTS_PER_PAGE", 10), type=int)
        per_page = min(max(per_page, 1), 100)
        result = list_posts(s, search=request.args.get("q"), page=page, per_page=per_page)
        return jsonify(
            {
                "data": [post_to_dict(p) for p in result.items],
                "meta": {
                    "page": result.page,
                    "per_page": result.per_page,
                    "total": result.total,
                    "total_pages": result.total_pages,
                },
            }
        )

    @staticmethod
    @require_api_permission("posts.create")
    def store():
        s = db_session()
        try:
            post = create_post(s, _payload(), g.current_user)
        except ValidationError as e:
            s.rollback()
            return _invalid(e)
        s.commit()
        return jsonify({"data": post_to_dict(post)}), 201

    @staticmethod
    def show(post_id: int):
        post = get_post(db_session(), post_id)
        if not post:
            return _not_found()
        return jsonify({"data": post_to_dict(post, with_comments=True)})

    @staticmethod
    @require_api_permission("posts.edit")
    def update(post_id: int):
        s = db_session()
        post = get_post(s, post_id)
        if not post:
            return _not_found()
        try:
            update_post(s, post, _payload(), g.current_user, partial=request.method == "PATCH")
        except ValidationError as e:
            s.rollback()
            return _invalid(e)
        s.commit()
        return jsonify({"data": post_to_dict(post)})

    @staticmethod
    @require_api_permission("posts.delete")
    def destroy(post_id: int):
        s = db_session()
        post = get_post(s, post_id)
        if not post:
            return _not_found()
        delete_post(s, post, g.current_user)
        s.commit()
        return "", 204


register_api_resource(bp, "posts", PostApiController, param="post_id")
