# trivia/faceoff/routes.py
from __future__ import annotations

from flask import current_app, jsonify, request
from flask_login import login_required

from trivia.identity import current_user_pk, current_username, is_authenticated, owner_id
from trivia.validation import json_body, require_int, require_str, response_text

from . import faceoff_bp
from . import engine


def _base_url() -> str:
    """Canonical base URL from config, else the current request root."""
    base = (current_app.config.get("BASE_URL") or "").strip()
    if base:
        return base.rstrip("/")
    return (request.url_root or "").rstrip("/")


def _share_url(code: str) -> str:
    return f"{_base_url()}/faceoff/{code}"


@faceoff_bp.route("/create", methods=["POST"])
@login_required
def create():
    data = json_body()
    session_id = require_str(data, "session_id", max_chars=64)
    challenge = engine.create_challenge(current_user_pk(), current_username(), session_id)
    return jsonify({
        "ok": True,
        "share_code": challenge.share_code,
        "share_url": _share_url(challenge.share_code),
        "challenge": challenge.to_payload(),
    })


@faceoff_bp.route("/mine", methods=["GET"])
@login_required
def mine():
    return jsonify({"ok": True, "challenges": engine.my_challenges(current_user_pk())})


@faceoff_bp.route("/answer", methods=["POST"])
def answer():
    data = json_body()
    play_id = require_str(data, "play_id", max_chars=64)
    question_id = require_str(data, "question_id", max_chars=64)
    verdict = engine.answer(owner_id(), play_id, question_id, response_text(data),
                            authenticated=is_authenticated())
    return jsonify({"ok": True, **verdict})


@faceoff_bp.route("/finish", methods=["POST"])
@login_required
def finish():
    data = json_body()
    play_id = require_str(data, "play_id", max_chars=64)
    time_taken = require_int(data, "time_taken", required=False, minimum=0)
    result = engine.finish(owner_id(), current_user_pk(), current_username(), play_id, time_taken)
    return jsonify({"ok": True, **result})


@faceoff_bp.route("/<share_code>", methods=["GET"])
def detail(share_code: str):
    return jsonify({"ok": True, **engine.get_challenge(share_code)})


@faceoff_bp.route("/<share_code>/play", methods=["POST"])
def play(share_code: str):
    return jsonify({"ok": True, **engine.open_challenge(owner_id(), share_code)})


@faceoff_bp.route("/<share_code>/leaderboard", methods=["GET"])
def leaderboard_view(share_code: str):
    limit = require_int(dict(request.args), "limit", required=False, minimum=1, maximum=100, default=50)
    return jsonify({"ok": True, **engine.leaderboard(share_code, limit)})
