# trivia/quiz/routes.py
from __future__ import annotations

from flask import jsonify, request
from flask_login import login_required

from trivia.errors import ValidationError
from trivia.generator import QUESTION_TYPES
from trivia.identity import current_user_pk, current_username, is_authenticated, owner_id
from trivia.validation import json_body, require_int, require_str, response_text

from . import quiz_bp
from . import engine


def _question_types(data):
    raw = data.get("question_types")
    if raw is None:
        return list(QUESTION_TYPES)
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not raw or not all(isinstance(t, str) for t in raw):
        raise ValidationError('"question_types" must be a list of question types.')
    return raw


@quiz_bp.route("/trivia/daily", methods=["GET"])
def daily():
    return jsonify({"ok": True, **engine.daily_challenge(current_user_pk())})


@quiz_bp.route("/trivia/quiz", methods=["POST"])
def create_quiz():
    data = json_body()
    daily_flag = bool(data.get("daily", False))
    result = engine.create_quiz(
        owner_id(),
        require_str(data, "category", required=False, max_chars=120),
        require_int(data, "num_questions", required=False, default=5),
        require_str(data, "difficulty", required=False, default="medium"),
        _question_types(data),
        daily=daily_flag,
    )
    return jsonify({"ok": True, **result})


@quiz_bp.route("/trivia/evaluate", methods=["POST"])
def evaluate():
    data = json_body()
    session_id = require_str(data, "session_id", max_chars=64)
    question_id = require_str(data, "question_id", max_chars=64)
    verdict = engine.evaluate_answer(owner_id(), session_id, question_id, response_text(data),
                                     authenticated=is_authenticated())
    return jsonify({"ok": True, **verdict})


@quiz_bp.route("/quiz/submit", methods=["POST"])
@login_required
def submit():
    data = json_body()
    session_id = require_str(data, "session_id", max_chars=64)
    time_taken = require_int(data, "time_taken", required=False, minimum=0)
    result = engine.submit_quiz(owner_id(), current_user_pk(), current_username(), session_id, time_taken)
    return jsonify({"ok": True, **result})


@quiz_bp.route("/quiz/history", methods=["GET"])
@login_required
def history():
    limit = require_int(dict(request.args), "limit", required=False, minimum=1, maximum=100, default=20)
    return jsonify({"ok": True, "sessions": engine.history(current_user_pk(), limit)})


@quiz_bp.route("/quiz/history/<session_id>", methods=["GET"])
@login_required
def history_detail(session_id: str):
    return jsonify({"ok": True, "session": engine.history_detail(current_user_pk(), session_id).to_payload()})


@quiz_bp.route("/trivia/question", methods=["POST"])
def single_question():
    data = json_body()
    result = engine.create_single_question(
        owner_id(),
        require_str(data, "category", required=False, max_chars=120),
        require_str(data, "difficulty", required=False, default="medium"),
        require_str(data, "question_type", required=False, options=QUESTION_TYPES),
    )
    return jsonify({"ok": True, **result})


@quiz_bp.route("/trivia/question/answer", methods=["POST"])
def single_question_answer():
    data = json_body()
    container_id = require_str(data, "container_id", max_chars=64)
    question_id = require_str(data, "question_id", max_chars=64)
    verdict = engine.answer_single_question(owner_id(), container_id, question_id, response_text(data),
                                            authenticated=is_authenticated())
    return jsonify({"ok": True, **verdict})


@quiz_bp.route("/streak", methods=["GET"])
@login_required
def streak():
    return jsonify({"ok": True, "streak": engine.daily_streak(current_user_pk())})
