from datetime import timedelta

import pytest

from trivia.extensions import db
from trivia.faceoff.models import FaceoffChallenge
from trivia.models import _utcnow


def _finished_quiz(client, responses=("A", "A", "B")):
    quiz = client.post("/api/trivia/quiz", json={
        "category": "History", "num_questions": len(responses), "question_types": ["multiple_choice"],
    }).get_json()
    for question, response in zip(quiz["questions"], responses):
        client.post("/api/trivia/evaluate", json={
            "session_id": quiz["session_id"], "question_id": question["id"], "response": response,
        })
    client.post("/api/quiz/submit", json={"session_id": quiz["session_id"], "time_taken": 30})
    return quiz


@pytest.fixture
def challenge(client):
    quiz = _finished_quiz(client)
    resp = client.post("/api/faceoff/create", json={"session_id": quiz["session_id"]})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def _answer(client, play_id, question_id, response):
    return client.post("/api/faceoff/answer",
                       json={"play_id": play_id, "question_id": question_id, "response": response})


def test_create_is_idempotent(client, challenge):
    assert len(challenge["share_code"]) == 6
    assert challenge["share_url"].endswith(f"/faceoff/{challenge['share_code']}")
    assert challenge["challenge"]["creator_score"] == 2
    assert challenge["challenge"]["creator_username"] == "alice"

    session_id = client.get("/api/quiz/history").get_json()["sessions"][0]["id"]
    again = client.post("/api/faceoff/create", json={"session_id": session_id}).get_json()
    assert again["share_code"] == challenge["share_code"]


def test_preview_hides_answers(guest_client, challenge):
    body = guest_client.get(f"/api/faceoff/{challenge['share_code']}").get_json()
    assert len(body["questions"]) == 3
    for question in body["questions"]:
        assert "correct_answer" not in question
        assert "explanation" not in question
    assert body["challenge"]["times_played"] == 0


def test_each_play_is_judged_on_its_own(other_client, guest_client, challenge):
    code = challenge["share_code"]
    bob = other_client.post(f"/api/faceoff/{code}/play").get_json()
    guest = guest_client.post(f"/api/faceoff/{code}/play").get_json()
    assert bob["play_id"] != guest["play_id"]

    qid = bob["questions"][0]["question_id"]
    right = _answer(other_client, bob["play_id"], qid, "A").get_json()
    wrong = _answer(guest_client, guest["play_id"], qid, "C").get_json()
    assert right["correct"] is True and right["already_answered"] is False
    assert wrong["correct"] is False and wrong["already_answered"] is False

    repeat = _answer(other_client, bob["play_id"], qid, "C").get_json()
    assert repeat["already_answered"] is True
    assert repeat["correct"] is True

    preview = guest_client.get(f"/api/faceoff/{code}").get_json()
    assert preview["challenge"]["times_played"] == 2


def test_plays_are_private(other_client, guest_client, challenge):
    code = challenge["share_code"]
    play = other_client.post(f"/api/faceoff/{code}/play").get_json()
    qid = play["questions"][0]["question_id"]
    assert _answer(guest_client, play["play_id"], qid, "A").status_code == 403


def test_finish_and_leaderboard(other_client, challenge):
    code = challenge["share_code"]
    play = other_client.post(f"/api/faceoff/{code}/play").get_json()
    for question in play["questions"]:
        _answer(other_client, play["play_id"], question["question_id"], "A")

    result = other_client.post("/api/faceoff/finish", json={"play_id": play["play_id"], "time_taken": 20}).get_json()
    assert result["duplicate"] is False
    assert result["session"]["correct_answers"] == 3
    assert result["session"]["game_mode"] == "faceoff"
    assert result["beat_creator"] is True

    again = other_client.post("/api/faceoff/finish", json={"play_id": play["play_id"]}).get_json()
    assert again["duplicate"] is True

    board = other_client.get(f"/api/faceoff/{code}/leaderboard").get_json()["leaderboard"]
    assert [(row["username"], row["correct_answers"]) for row in board] == [("bob", 3)]


def test_expired_challenge_is_not_found(app, guest_client, challenge):
    code = challenge["share_code"]
    with app.app_context():
        FaceoffChallenge.query.filter_by(share_code=code).update({"expires_at": _utcnow() - timedelta(minutes=1)})
        db.session.commit()

    for resp in (guest_client.get(f"/api/faceoff/{code}"), guest_client.post(f"/api/faceoff/{code}/play")):
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "NOT_FOUND"


def test_only_finished_quizzes_can_be_shared(client):
    assert client.post("/api/faceoff/create", json={"session_id": "nope"}).status_code == 404

    run = client.post("/api/survival/question", json={"mode": "mixed"}).get_json()
    client.post("/api/survival/end", json={"run_id": run["run_id"]})
    resp = client.post("/api/faceoff/create", json={"session_id": run["run_id"]})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_my_challenges(client, challenge):
    mine = client.get("/api/faceoff/mine").get_json()["challenges"]
    assert [c["share_code"] for c in mine] == [challenge["share_code"]]
    assert mine[0]["active"] is True
