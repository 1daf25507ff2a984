from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from lottery_client.session import OPERATIONS

from ..schemas import SessionView

bp = Blueprint("session", __name__)


def _runner():
    return current_app.extensions["lottery_runner"]


def _notices():
    return current_app.extensions["lottery_notices"]


def _view() -> dict:
    runner = _runner()
    session = runner.session
    board = _notices()

    # Read on the session loop so state and action come from the same instant.
    async def snapshot() -> SessionView:
        return SessionView.build(session.state, session.action, board.recent())

    return runner.call(snapshot(), timeout=10).model_dump()


@bp.get("")
def get_session():
    return jsonify(_view())


@bp.post("/connect")
def connect():
    runner = _runner()
    connected = runner.call(runner.session.connect())
    return jsonify(_view()), 200 if connected else 409


@bp.post("/refresh")
def refresh():
    runner = _runner()
    session = runner.session

    async def refresh_on_demand() -> None:
        await session.refresh_phase()
        await session.refresh_entry_count()

    runner.call(refresh_on_demand(), timeout=30)
    return jsonify(_view())


@bp.post("/actions/<operation>")
def perform_action(operation: str):
    if operation not in OPERATIONS:
        return jsonify({"error": f"unknown operation: {operation}"}), 404
    if operation == "connect":
        return connect()

    runner = _runner()
    # The connection and in-flight checks run on the session loop with the launch.
    if not runner.call(runner.session.launch(operation), timeout=10):
        view = _view()
        error = "a transaction is already pending" if view["connected"] else "wallet not connected"
        return jsonify({"error": error}), 409

    current_app.logger.info("Started %s", operation)
    return jsonify(_view()), 202
