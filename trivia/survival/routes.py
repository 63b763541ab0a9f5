# trivia/survival/routes.py
from __future__ import annotations

from flask import jsonify, request
from flask_login import login_required

from trivia.identity import current_user_id, current_user_pk, current_username, is_authenticated
from trivia.validation import json_body, require_int, require_str, response_text

from . import survival_bp
from . import engine


@survival_bp.route("/start", methods=["POST"])
@login_required
def start():
    data = json_body()
    mode = require_str(data, "mode", options=engine.MODES, default="mixed")
    category = require_str(data, "category", required=False)
    snap = engine.start_run(current_user_pk(), current_username(), mode, category)
    return jsonify({"ok": True, "run_id": snap.id, "run": engine.ActiveRun.from_data(snap.data).public()})


@survival_bp.route("/question", methods=["POST"])
@login_required
def question():
    data = json_body()
    run_id = require_str(data, "run_id", required=False, max_chars=64)
    if not run_id:
        # first question of a fresh run; a generation failure rolls the run back too
        mode = require_str(data, "mode", options=engine.MODES, default="mixed")
        category = require_str(data, "category", required=False)
        run_id = engine.start_run(current_user_pk(), current_username(), mode, category, commit=False).id
    result = engine.next_question(current_user_id(), run_id)
    return jsonify({"ok": True, **result})


@survival_bp.route("/answer", methods=["POST"])
@login_required
def answer():
    data = json_body()
    run_id = require_str(data, "run_id", max_chars=64)
    question_id = require_str(data, "question_id", max_chars=64)
    result = engine.submit_answer(current_user_id(), run_id, question_id, response_text(data),
                                  authenticated=is_authenticated())
    return jsonify({"ok": True, **result})


@survival_bp.route("/end", methods=["POST"])
@login_required
def end():
    data = json_body()
    run_id = require_str(data, "run_id", max_chars=64)
    return jsonify({"ok": True, **engine.end_run(current_user_id(), run_id)})


@survival_bp.route("/run/<run_id>", methods=["GET"])
def run_detail(run_id: str):
    return jsonify({"ok": True, "run": engine.get_run(run_id).to_payload()})


@survival_bp.route("/leaderboard", methods=["GET"])
def leaderboard_view():
    mode = request.args.get("mode", "mixed")
    category = request.args.get("category") or None
    limit = require_int(dict(request.args), "limit", required=False, minimum=1, maximum=100, default=50)
    return jsonify({"ok": True, "mode": mode, "category": category,
                    "leaderboard": engine.leaderboard(mode, category, limit)})


@survival_bp.route("/stats", methods=["GET"])
@login_required
def stats():
    return jsonify({"ok": True, "stats": engine.stats(current_user_pk())})
