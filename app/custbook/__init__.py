import logging

from flask import Flask, flash, redirect, render_template, request, url_for
from dotenv import load_dotenv

from app.custbook.config import load_config
from app.custbook.db import init_db, teardown_db_session
from app.custbook.routes import bp as routes_bp
from app.custbook.api import bp as customers_api_bp
from app.custbook.views import bp as customers_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    # Storage config check (log loudly on misconfiguration, don't block boot)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(customers_api_bp, url_prefix="/api/customers")
    app.register_blueprint(customers_bp, url_prefix="/customers")

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (path=%s)", request.path)
        if request.path.startswith("/api/"):
            return {"error": "internal_error", "message": "Internal server error."}, 500
        return render_template("errors/500.html"), 500

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        limit_mb = int(app.config["MAX_CONTENT_LENGTH"]) // (1024 * 1024)
        if request.path.startswith("/api/"):
            return {"error": "payload_too_large", "message": f"Request body exceeds {limit_mb}MB."}, 413
        flash(f"File too large. Maximum size is {limit_mb}MB.", "danger")
        return redirect(url_for("customers.customers_list")), 302

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
