from datetime import date, timedelta

from trivia.categories import CATEGORIES, daily_category, local_today
from trivia.extensions import db
from trivia.generator import BATCH_SYSTEM_PROMPT
from trivia.identity import owner_id
from trivia.quiz import engine
from trivia.quiz.models import DailyStreak


def _create(client, **body):
    body.setdefault("category", "Geography")
    body.setdefault("num_questions", 3)
    body.setdefault("question_types", ["multiple_choice"])
    resp = client.post("/api/trivia/quiz", json=body)
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def _evaluate(client, quiz, question, response):
    return client.post("/api/trivia/evaluate", json={
        "session_id": quiz["session_id"], "question_id": question["id"], "response": response,
    })


def test_daily_category_is_deterministic(ctx):
    day = date(2026, 3, 14)
    assert daily_category(day) == daily_category(day)
    assert daily_category(day) in CATEGORIES
    picks = {daily_category(day + timedelta(days=i)) for i in range(30)}
    assert len(picks) > 1


def test_daily_challenge_is_shared(client, guest_client):
    mine = client.get("/api/trivia/daily").get_json()
    theirs = guest_client.get("/api/trivia/daily").get_json()
    assert mine["category"] == theirs["category"]
    assert mine["num_questions"] == 5
    assert mine["completed"] is False
    assert "completed" not in theirs


def test_daily_quiz_ignores_requested_settings(client, fake):
    quiz = _create(client, daily=True, category="Music", num_questions=12)
    assert quiz["is_daily"] is True
    assert quiz["category"] == client.get("/api/trivia/daily").get_json()["category"]
    assert len(quiz["questions"]) == 5
    assert len(fake.calls_to(BATCH_SYSTEM_PROMPT)) == 1


def test_quiz_questions_hide_answers(guest_client):
    quiz = _create(guest_client)
    assert len(quiz["questions"]) == 3
    for question in quiz["questions"]:
        assert "answer" not in question
        assert "explanation" not in question


def test_each_question_is_evaluated_once(guest_client):
    quiz = _create(guest_client)
    question = quiz["questions"][0]
    first = _evaluate(guest_client, quiz, question, "B").get_json()
    assert first["correct"] is False
    assert first["correct_answer"] == "A"
    second = _evaluate(guest_client, quiz, question, "A").get_json()
    assert second["correct"] is False
    assert second["already_answered"] is True


def test_sessions_belong_to_their_player(guest_client, client):
    quiz = _create(guest_client)
    resp = _evaluate(client, quiz, quiz["questions"][0], "A")
    assert resp.status_code == 403


def test_submit_scores_from_server_verdicts(client):
    quiz = _create(client)
    _evaluate(client, quiz, quiz["questions"][0], "A")
    _evaluate(client, quiz, quiz["questions"][1], "A")
    _evaluate(client, quiz, quiz["questions"][2], "C")

    body = client.post("/api/quiz/submit", json={"session_id": quiz["session_id"], "time_taken": 42}).get_json()
    assert body["duplicate"] is False
    session = body["session"]
    assert session["game_mode"] == "practice"
    assert session["correct_answers"] == 2
    assert session["num_questions"] == 3
    assert session["score_percentage"] == 66.67
    assert [q["is_correct"] for q in session["questions"]] == [True, True, False]

    again = client.post("/api/quiz/submit", json={"session_id": quiz["session_id"]}).get_json()
    assert again["duplicate"] is True
    assert again["session"]["correct_answers"] == 2

    # answer keys are gone once the quiz is scored
    assert _evaluate(client, quiz, quiz["questions"][2], "A").status_code == 404

    history = client.get("/api/quiz/history").get_json()["sessions"]
    assert [h["id"] for h in history] == [quiz["session_id"]]
    detail = client.get(f"/api/quiz/history/{quiz['session_id']}").get_json()["session"]
    assert detail["time_taken"] == 42


def test_daily_submission_marks_the_day_done(client):
    quiz = _create(client, daily=True)
    client.post("/api/quiz/submit", json={"session_id": quiz["session_id"]})
    daily = client.get("/api/trivia/daily").get_json()
    assert daily["completed"] is True
    assert daily["session_id"] == quiz["session_id"]


def test_submit_requires_sign_in(guest_client):
    quiz = _create(guest_client)
    resp = guest_client.post("/api/quiz/submit", json={"session_id": quiz["session_id"]})
    assert resp.status_code == 401


def test_invalid_quiz_settings(client):
    assert client.post("/api/trivia/quiz", json={"category": "Knitting"}).status_code == 400
    assert client.post("/api/trivia/quiz", json={"num_questions": 21}).status_code == 400
    assert client.post("/api/trivia/quiz", json={"difficulty": "brutal"}).status_code == 400
    assert client.post("/api/trivia/quiz", json={"question_types": ["essay"]}).status_code == 400


def test_single_question_is_disposable(guest_client):
    created = guest_client.post("/api/trivia/question", json={"question_type": "short_answer"}).get_json()
    question = created["question"]
    assert "answer" not in question
    body = {"container_id": created["container_id"], "question_id": question["id"], "response": "paris"}

    verdict = guest_client.post("/api/trivia/question/answer", json=body).get_json()
    assert verdict["correct"] is True

    resp = guest_client.post("/api/trivia/question/answer", json=body)
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "NOT_FOUND"


def test_racing_answers_to_a_single_question(guest_client, race):
    created = guest_client.post("/api/trivia/question", json={"question_type": "multiple_choice"}).get_json()
    container_id, qid = created["container_id"], created["question"]["id"]
    race(lambda: engine.answer_single_question(owner_id(), container_id, qid, "A", authenticated=False))

    resp = guest_client.post("/api/trivia/question/answer",
                             json={"container_id": container_id, "question_id": qid, "response": "B"})
    assert resp.status_code == 200
    verdict = resp.get_json()
    assert verdict["already_answered"] is True
    assert verdict["correct"] is True


def test_streak_rules():
    day = date(2026, 3, 14)
    streak = DailyStreak(current_streak=0, longest_streak=0)
    streak.record(day)
    streak.record(day)
    assert (streak.current_streak, streak.longest_streak) == (1, 1)
    streak.record(day + timedelta(days=1))
    assert (streak.current_streak, streak.longest_streak) == (2, 2)
    streak.record(day)
    assert streak.current_streak == 2
    streak.record(day + timedelta(days=4))
    assert (streak.current_streak, streak.longest_streak) == (1, 2)

    assert streak.current_as_of(day + timedelta(days=5)) == 1
    assert streak.current_as_of(day + timedelta(days=6)) == 0


def test_daily_submit_extends_the_streak(client):
    assert client.get("/api/streak").get_json()["streak"] == {
        "current_streak": 0, "longest_streak": 0, "last_completed_date": None,
    }
    quiz = _create(client, daily=True)
    body = client.post("/api/quiz/submit", json={"session_id": quiz["session_id"]}).get_json()
    assert body["streak"]["current_streak"] == 1

    streak = client.get("/api/streak").get_json()["streak"]
    assert streak["current_streak"] == 1
    assert streak["longest_streak"] == 1
    assert streak["last_completed_date"] == quiz["daily_date"]


def test_practice_submit_leaves_the_streak_alone(client):
    quiz = _create(client)
    body = client.post("/api/quiz/submit", json={"session_id": quiz["session_id"]}).get_json()
    assert "streak" not in body
    assert client.get("/api/streak").get_json()["streak"]["current_streak"] == 0


def test_skipped_day_breaks_the_streak(app, client, user):
    with app.app_context():
        db.session.add(DailyStreak(user_id=user.id, current_streak=4, longest_streak=6,
                                   last_completed_date=local_today() - timedelta(days=3)))
        db.session.commit()
    streak = client.get("/api/streak").get_json()["streak"]
    assert streak["current_streak"] == 0
    assert streak["longest_streak"] == 6
