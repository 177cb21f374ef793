import logging
import os
from datetime import timedelta

from flask import Flask, g, render_template, request, session
from dotenv import load_dotenv

from app.quill.config import is_production, load_config
from app.quill.db import init_db, teardown_db_session
from app.quill.logs import configure_logging
from app.quill.resources import MethodOverrideMiddleware
from app.quill.routes import bp as routes_bp
from app.quill.auth import bp as auth_bp, load_current_user
from app.quill.modules.posts.admin import bp as posts_bp, comments_bp
from app.quill.modules.posts.api import bp as posts_api_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.config.setdefault("MAX_CONTENT_LENGTH", 1 * 1024 * 1024)

    configure_logging(app.config["LOG_LEVEL"])

    # HTML forms send PUT/PATCH/DELETE as POST + _method
    app.wsgi_app = MethodOverrideMiddleware(app.wsgi_app)  # type: ignore[method-assign]

    from app.quill.security import ensure_csrf_token, validate_csrf
    from app.quill.flashing import pop_form_state

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_permissions() -> dict:
        from app.quill.rbac import user_has_permission

        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        return {"has_perm": has_perm, "current_user": getattr(g, "current_user", None)}

    @app.context_processor
    def _inject_form_state() -> dict:
        # Errors/old input flashed by the previous request are shown once.
        if "form_state" not in g:
            g.form_state = pop_form_state()
        errors, old_input = g.form_state

        def old(name: str, default: object = "") -> object:
            return old_input.get(name, default)

        return {"errors": errors, "old": old}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # login/logout pass through
            if (request.endpoint or "").startswith("auth."):
                return None
            # anonymous API writes get a 401 from require_api_permission instead
            if request.path.startswith("/api/") and not session.get("user_id"):
                return None
            if not validate_csrf(request):
                app.logger.warning("CSRF check failed (path=%s)", request.path)
                if request.path.startswith("/api/"):
                    return {"message": "CSRF token missing or invalid."}, 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    if is_production(app.config.get("ENV")):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("Database must not be sqlite in production. Set DATABASE_URL or DB_CONNECTION.")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    if hasattr(os, "register_at_fork"):
        def _after_fork_child():
            engine = app.extensions.get("sqlalchemy_engine")
            if engine:
                engine.dispose()
                app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

        os.register_at_fork(after_in_child=_after_fork_child)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(posts_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(posts_api_bp, url_prefix="/api")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(400)
    def _err_400(e):  # type: ignore[no-redef]
        return render_template("errors/400.html", message=getattr(e, "description", None)), 400

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if request.path.startswith("/api/"):
            return {"message": "Not found."}, 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        if request.path.startswith("/api/"):
            return {"message": "Method not allowed."}, 405
        return render_template("errors/400.html", message="Method not allowed."), 405

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
