from trivia.extensions import db
from trivia.generator import SINGLE_SYSTEM_PROMPT
from trivia.models import ActiveGame, AnswerKeyEntry, QuizEvaluation
from trivia.survival import engine


def _question(client, **body):
    resp = client.post("/api/survival/question", json=body)
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def _answer(client, run_id, question_id, response):
    return client.post("/api/survival/answer",
                       json={"run_id": run_id, "question_id": question_id, "response": response})


def test_questions_never_carry_answers(client):
    data = _question(client, mode="mixed")
    question = data["question"]
    assert question["id"].startswith("q_")
    assert "answer" not in question
    assert "explanation" not in question
    assert data["run"]["streak"] == 0


def test_streak_until_first_miss(client):
    data = _question(client, mode="mixed")
    run_id = data["run_id"]

    resp = _answer(client, run_id, data["question"]["id"], "A")
    body = resp.get_json()
    assert body["correct"] is True
    assert body["game_over"] is False
    assert body["run"]["streak"] == 1
    assert len(body["run"]["categories_seen"]) == 1

    data = _question(client, run_id=run_id)
    body = _answer(client, run_id, data["question"]["id"], "B").get_json()
    assert body["correct"] is False
    assert body["correct_answer"] == "A"
    assert body["game_over"] is True
    assert body["run"]["status"] == "terminated"
    assert body["run"]["streak"] == 1
    assert body["run"]["end_reason"] == "incorrect"
    assert body["run"]["rank"] == 1
    assert body["run"]["is_personal_best"] is True

    # the run is gone: further play reports an expired session
    resp = client.post("/api/survival/question", json={"run_id": run_id})
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "NOT_FOUND"

    stored = client.get(f"/api/survival/run/{run_id}").get_json()["run"]
    assert stored["streak"] == 1
    assert len(stored["questions_attempted"]) == 2


def test_unanswered_question_is_handed_back(client, fake):
    first = _question(client, mode="category", category="Science")
    again = _question(client, run_id=first["run_id"])
    assert again["question"]["id"] == first["question"]["id"]
    assert len(fake.calls_to(SINGLE_SYSTEM_PROMPT)) == 1


def test_duplicate_answer_does_not_move_the_streak(client):
    data = _question(client, mode="mixed")
    run_id, qid = data["run_id"], data["question"]["id"]
    assert _answer(client, run_id, qid, "A").get_json()["run"]["streak"] == 1

    body = _answer(client, run_id, qid, "A").get_json()
    assert body["already_answered"] is True
    assert body["run"]["streak"] == 1


def test_answer_for_unknown_question_is_rejected(client):
    data = _question(client, mode="mixed")
    resp = _answer(client, data["run_id"], "q_notarealone", "A")
    assert resp.status_code == 409
    assert resp.get_json()["error"]["code"] == "INVALID_STATE"


def test_other_players_cannot_touch_a_run(client, other_client):
    data = _question(client, mode="mixed")
    resp = _answer(other_client, data["run_id"], data["question"]["id"], "A")
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "UNAUTHORIZED"


def test_guests_must_sign_in(guest_client):
    resp = guest_client.post("/api/survival/start", json={"mode": "mixed"})
    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "UNAUTHENTICATED"


def test_category_mode_requires_a_known_category(client):
    resp = client.post("/api/survival/start", json={"mode": "category", "category": "Knitting"})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_abandon_and_leaderboard(client, other_client):
    data = _question(client, mode="mixed")
    _answer(client, data["run_id"], data["question"]["id"], "A")
    ended = client.post("/api/survival/end", json={"run_id": data["run_id"]}).get_json()
    assert ended["run"]["end_reason"] == "abandoned"
    assert ended["run"]["streak"] == 1

    data = _question(other_client, mode="mixed")
    other_client.post("/api/survival/end", json={"run_id": data["run_id"]})

    board = client.get("/api/survival/leaderboard?mode=mixed").get_json()["leaderboard"]
    assert [row["username"] for row in board] == ["alice", "bob"]
    assert [row["streak"] for row in board] == [1, 0]


def test_failed_first_question_leaves_no_run(app, client, fake):
    fake.queue("garbage", "still garbage")
    resp = client.post("/api/survival/question", json={"mode": "mixed"})
    assert resp.status_code == 502
    error = resp.get_json()["error"]
    assert error["code"] == "GENERATION_FAILED"
    assert error["retryable"] is True
    with app.app_context():
        assert ActiveGame.query.filter_by(kind="survival").count() == 0


def test_failed_next_question_leaves_the_run_untouched(app, client, fake):
    data = _question(client, mode="mixed")
    run_id = data["run_id"]
    _answer(client, run_id, data["question"]["id"], "A")
    with app.app_context():
        version = db.session.get(ActiveGame, run_id).version
        keys = AnswerKeyEntry.query.filter_by(container_id=run_id).count()

    fake.queue("garbage", "still garbage")
    assert client.post("/api/survival/question", json={"run_id": run_id}).status_code == 502
    with app.app_context():
        assert db.session.get(ActiveGame, run_id).version == version
        assert AnswerKeyEntry.query.filter_by(container_id=run_id).count() == keys

    retry = _question(client, run_id=run_id)
    assert retry["run"]["streak"] == 1


def test_racing_submits_move_the_streak_once(app, client, user, race):
    data = _question(client, mode="mixed")
    run_id, qid = data["run_id"], data["question"]["id"]
    race(lambda: engine.submit_answer(str(user.id), run_id, qid, "A"))

    body = _answer(client, run_id, qid, "A").get_json()
    assert body["already_answered"] is True
    assert body["correct"] is True
    assert body["game_over"] is False
    assert body["run"]["streak"] == 1
    with app.app_context():
        assert db.session.get(ActiveGame, run_id).data["streak"] == 1
        assert QuizEvaluation.query.filter_by(evaluation_scope=run_id).count() == 1


def test_losing_submit_sees_the_run_end(client, user, race):
    data = _question(client, mode="mixed")
    run_id, qid = data["run_id"], data["question"]["id"]
    race(lambda: engine.submit_answer(str(user.id), run_id, qid, "B"))

    body = _answer(client, run_id, qid, "A").get_json()
    assert body["already_answered"] is True
    assert body["correct"] is False
    assert body["game_over"] is True
    assert body["run"]["status"] == "terminated"
    assert body["run"]["end_reason"] == "incorrect"


def test_stats(client, other_client):
    data = _question(client, mode="mixed")
    _answer(client, data["run_id"], data["question"]["id"], "A")
    client.post("/api/survival/end", json={"run_id": data["run_id"]})

    data = _question(client, mode="category", category="Science")
    client.post("/api/survival/end", json={"run_id": data["run_id"]})

    data = _question(other_client, mode="mixed")
    _answer(other_client, data["run_id"], data["question"]["id"], "A")
    data = _question(other_client, run_id=data["run_id"])
    _answer(other_client, data["run_id"], data["question"]["id"], "A")
    other_client.post("/api/survival/end", json={"run_id": data["run_id"]})

    stats = client.get("/api/survival/stats").get_json()["stats"]
    assert stats["mixed_best_streak"] == 1
    assert stats["mixed_rank"] == 2
    assert stats["category_bests"] == [{"category": "Science", "streak": 0, "rank": None}]
    assert stats["total_runs"] == 2
    assert stats["total_questions_survived"] == 1
    assert len(stats["recent_runs"]) == 2

    assert other_client.get("/api/survival/stats").get_json()["stats"]["mixed_rank"] == 1
