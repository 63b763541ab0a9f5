# trivia/jeopardy/routes.py
from __future__ import annotations

from flask import jsonify, request
from flask_login import login_required

from trivia.errors import ValidationError
from trivia.identity import current_user_id, current_user_pk, current_username, is_authenticated
from trivia.validation import json_body, require_int, require_str, response_text

from . import jeopardy_bp
from . import engine


@jeopardy_bp.route("/start", methods=["POST"])
@login_required
def start():
    data = json_body()
    board_size = require_int(data, "board_size")
    categories = data.get("categories")
    if not isinstance(categories, list):
        raise ValidationError('"categories" must be a list.')
    snap = engine.start_game(current_user_pk(), current_username(), board_size, categories)
    game = engine.InProgressGame.from_data(snap.data)
    return jsonify({"ok": True, "game_id": snap.id, "game": game.public()})


@jeopardy_bp.route("/question", methods=["POST"])
@login_required
def question():
    data = json_body()
    game_id = require_str(data, "game_id", max_chars=64)
    category = require_str(data, "category", max_chars=120)
    points = require_int(data, "points")
    return jsonify({"ok": True, **engine.select_cell(current_user_id(), game_id, category, points)})


@jeopardy_bp.route("/answer", methods=["POST"])
@login_required
def answer():
    data = json_body()
    game_id = require_str(data, "game_id", max_chars=64)
    question_id = require_str(data, "question_id", max_chars=64)
    result = engine.submit_answer(current_user_id(), game_id, question_id, response_text(data),
                                  authenticated=is_authenticated())
    return jsonify({"ok": True, **result})


@jeopardy_bp.route("/end", methods=["POST"])
@login_required
def end():
    data = json_body()
    game_id = require_str(data, "game_id", max_chars=64)
    return jsonify({"ok": True, **engine.end_game(current_user_id(), game_id)})


@jeopardy_bp.route("/game/<game_id>", methods=["GET"])
@login_required
def game_detail(game_id: str):
    return jsonify({"ok": True, "game_id": game_id, "game": engine.get_game(current_user_id(), game_id)})


@jeopardy_bp.route("/leaderboard", methods=["GET"])
def leaderboard_view():
    args = dict(request.args)
    board_size = require_int(args, "board_size", required=False, default=5)
    limit = require_int(args, "limit", required=False, minimum=1, maximum=100, default=50)
    return jsonify({"ok": True, "board_size": board_size, "leaderboard": engine.leaderboard(board_size, limit)})


@jeopardy_bp.route("/stats", methods=["GET"])
@login_required
def stats():
    return jsonify({"ok": True, "stats": engine.stats(current_user_pk())})
