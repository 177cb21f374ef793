from flask import Blueprint, render_template

from app.quill.db import db_session
from app.quill.modules.posts.service import list_posts

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    latest = list_posts(db_session(), page=1, per_page=5)
    return render_template("public/index.html", posts=latest.items)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for load balancer probes. No DB access.
    """
    return "ok", 200
