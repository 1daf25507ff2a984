from __future__ import annotations

import atexit
from typing import Callable, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from lottery_client.notices import NoticeBoard
from lottery_client.service import build_demo_session
from lottery_client.session import LotterySession

from .config import AppSettings, load_settings
from .routes.health import bp as health_bp
from .routes.session import bp as session_bp
from .runner import SessionRunner

SessionFactory = Callable[[NoticeBoard], LotterySession]


def default_session_factory(settings: AppSettings) -> SessionFactory:
    def factory(notices: NoticeBoard) -> LotterySession:
        if settings.demo:
            return build_demo_session(settings.client, notifier=notices)
        return LotterySession.from_settings(settings.client, notifier=notices)

    return factory


def create_app(session_factory: Optional[SessionFactory] = None) -> Flask:
    settings = load_settings()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.flask.secret_key

    factory = session_factory or default_session_factory(settings)
    notices = NoticeBoard()
    runner = SessionRunner(lambda: factory(notices), logger=app.logger)
    runner.start()
    atexit.register(runner.stop)

    app.extensions["lottery_notices"] = notices
    app.extensions["lottery_runner"] = runner

    app.register_blueprint(health_bp)
    app.register_blueprint(session_bp, url_prefix="/session")

    @app.errorhandler(Exception)
    def handle_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": str(exc)}), 500

    return app
