# trivia/tower/routes.py
from __future__ import annotations

from typing import Dict

from flask import jsonify, request
from flask_login import login_required

from trivia.errors import ValidationError
from trivia.identity import current_user_pk, current_username
from trivia.validation import json_body, require_int, require_str

from . import tower_bp
from . import achievements, engine
from .floors import floor_info, is_valid_floor, total_floors


def _answers_from(data) -> Dict[str, str]:
    """Accept {"qid": "A"} or [{"question_id": "qid", "response": "A"}]."""
    raw = data.get("answers")
    if isinstance(raw, dict):
        items = raw.items()
    elif isinstance(raw, list):
        items = []
        for item in raw:
            if not isinstance(item, dict):
                raise ValidationError('"answers" entries must be objects.')
            items.append((item.get("question_id"), item.get("response", item.get("answer"))))
    else:
        raise ValidationError('"answers" must be an object or a list.')

    answers: Dict[str, str] = {}
    for qid, response in items:
        if not isinstance(qid, str):
            raise ValidationError("Every answer needs a question_id.")
        answers[qid] = "" if response is None else str(response)[:500]
    return answers


@tower_bp.route("/progress", methods=["GET"])
@login_required
def progress():
    return jsonify({"ok": True, "progress": engine.get_progress(current_user_pk(), current_username())})


@tower_bp.route("/floors/<int:floor>", methods=["GET"])
def floor_detail(floor: int):
    if not is_valid_floor(floor):
        raise ValidationError(f"Floor must be between 1 and {total_floors()}.")
    return jsonify({"ok": True, "floor": floor_info(floor).to_payload()})


@tower_bp.route("/generate", methods=["POST"])
@login_required
def generate():
    data = json_body()
    floor = require_int(data, "floor")
    return jsonify({"ok": True, **engine.generate_floor(current_user_pk(), current_username(), floor)})


@tower_bp.route("/submit", methods=["POST"])
@login_required
def submit():
    data = json_body()
    quiz_id = require_str(data, "quiz_id", max_chars=64)
    time_taken = require_int(data, "time_taken", required=False, minimum=0)
    result = engine.submit_floor(current_user_pk(), current_username(), quiz_id, _answers_from(data), time_taken)
    return jsonify({"ok": True, **result})


@tower_bp.route("/results/<attempt_id>", methods=["GET"])
@login_required
def results(attempt_id: str):
    return jsonify({"ok": True, "attempt": engine.get_attempt(current_user_pk(), attempt_id).to_payload()})


@tower_bp.route("/achievements", methods=["GET"])
@login_required
def achievements_view():
    unlocked = achievements.list_for(current_user_pk())
    held = {a["code"] for a in unlocked}
    catalogue = [{"code": code, **meta, "unlocked": code in held} for code, meta in achievements.ACHIEVEMENTS.items()]
    return jsonify({"ok": True, "unlocked": unlocked, "achievements": catalogue})


@tower_bp.route("/leaderboard", methods=["GET"])
def leaderboard_view():
    limit = require_int(dict(request.args), "limit", required=False, minimum=1, maximum=100, default=50)
    return jsonify({"ok": True, "leaderboard": engine.leaderboard(limit)})
