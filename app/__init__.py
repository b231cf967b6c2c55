from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from flask import Flask, g, request
from flask_cors import CORS

from app.routes.announcements import announcements_bp
from app.routes.api import rest_api
from app.routes.auth import auth_bp
from app.routes.core import core_bp
from app.routes.employees import employees_bp
from app.routes.messages import messages_bp
from app.routes.onboarding import onboarding_bp
from config import Config
from db import Base, init_engine
import models  # noqa: F401
from utils import err, now_monotonic


def _configure_logging(level: str):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app(notifier=None) -> Flask:
    """
    Build the API app.

    `notifier` replaces the Celery-backed invitation notifier (tests, local tools).
    """
    load_dotenv()
    cfg = Config()
    cfg.validate()
    _configure_logging(cfg.LOG_LEVEL)

    engine = init_engine(cfg.DATABASE_URL, pool_size=cfg.DB_POOL_SIZE, max_overflow=cfg.DB_MAX_OVERFLOW)

    Base.metadata.create_all(bind=engine)

    app = Flask(__name__)
    app.config["CFG"] = cfg
    app.config["JSON_SORT_KEYS"] = False

    CORS(
        app,
        origins=cfg.ALLOWED_ORIGINS,
        supports_credentials=False,
        allow_headers=["Content-Type", "Authorization", "X-Request-ID", "X-Session-Token", "Accept-Language"],
        expose_headers=["X-Request-ID"],
        methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        max_age=3600,
    )

    if notifier is not None:
        app.extensions["onboarding_notifier"] = notifier

    app.register_blueprint(core_bp)
    app.register_blueprint(rest_api)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(onboarding_bp, url_prefix="/api/onboarding")
    app.register_blueprint(employees_bp, url_prefix="/api/employees")
    app.register_blueprint(messages_bp, url_prefix="/api/messages")
    app.register_blueprint(announcements_bp, url_prefix="/api/announcements")

    @app.before_request
    def _before():
        incoming = str(request.headers.get("X-Request-ID") or "").strip()
        g.request_id = incoming[:64] if incoming else os.urandom(8).hex()
        g.start_ts = now_monotonic()

    @app.after_request
    def _after(resp):
        resp.headers["X-Request-ID"] = str(getattr(g, "request_id", "") or "")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("Cache-Control", "no-store")
        return resp

    @app.errorhandler(404)
    def not_found(_e):
        return err("NOT_FOUND", f"Unknown endpoint: {request.path}", http_status=404)

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return err("BAD_REQUEST", "Method not allowed", http_status=405)

    logging.getLogger("api").info("app started env=%s version=%s", cfg.APP_ENV, cfg.APP_VERSION)
    return app
