import json
import re

import pytest
from flask_login import FlaskLoginClient

from trivia import answer_keys, create_app
from trivia.extensions import db
from trivia.generator import BATCH_SYSTEM_PROMPT, CHOICE_IDS, GRADER_SYSTEM_PROMPT
from trivia.models import User


def _question(n, qtype):
    if qtype == "true_false":
        return {"type": "true_false", "prompt": f"Statement {n} is true.", "answer": "true",
                "explanation": f"Statement {n} checks out."}
    if qtype == "short_answer":
        return {"type": "short_answer", "prompt": f"What is the capital of France? ({n})", "answer": "Paris",
                "explanation": "Paris has been the capital since 987."}
    return {
        "type": "multiple_choice",
        "prompt": f"Question {n}?",
        "choices": [{"id": cid, "text": f"Option {cid}{n}"} for cid in CHOICE_IDS],
        "answer": "A",
        "explanation": f"Option A{n} is right.",
    }


class FakeCompletion:
    """Scripted provider. Queued replies go first, then well-formed defaults (answer A / true / Paris)."""

    def __init__(self):
        self.replies = []
        self.calls = []
        self.grade_score = 0.0
        self.grade_explanation = ""

    def queue(self, *texts):
        self.replies.extend(texts)

    def complete(self, system_prompt, user_prompt, temperature=0.7):
        self.calls.append({"system": system_prompt, "user": user_prompt, "temperature": temperature})
        if self.replies:
            return self.replies.pop(0)
        if system_prompt == GRADER_SYSTEM_PROMPT:
            return json.dumps({"score": self.grade_score, "explanation": self.grade_explanation})
        if system_prompt == BATCH_SYSTEM_PROMPT:
            count = int(re.search(r"Create (\d+) questions", user_prompt).group(1))
            qtype = re.search(r"Allowed question types: (\w+)", user_prompt).group(1)
            return json.dumps({"title": "Test Quiz", "questions": [_question(i, qtype) for i in range(count)]})
        qtype = re.search(r"Question type: (multiple_choice|true_false|short_answer)", user_prompt).group(1)
        return json.dumps(_question(len(self.calls), qtype))

    def calls_to(self, system_prompt):
        return [c for c in self.calls if c["system"] == system_prompt]


@pytest.fixture
def fake():
    return FakeCompletion()


@pytest.fixture
def app(fake):
    app = create_app("testing")
    app.completion_client = fake
    app.grader_client = fake
    app.test_client_class = FlaskLoginClient
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


def _make_user(app, username):
    with app.app_context():
        user = User(username=username, email=f"{username}@example.com")
        db.session.add(user)
        db.session.commit()
        user.id  # load attributes before the session closes
        return user


@pytest.fixture
def user(app):
    return _make_user(app, "alice")


@pytest.fixture
def other_user(app):
    return _make_user(app, "bob")


@pytest.fixture
def client(app, user):
    return app.test_client(user=user)


@pytest.fixture
def other_client(app, other_user):
    return app.test_client(user=other_user)


@pytest.fixture
def guest_client(app):
    return app.test_client()


@pytest.fixture
def race(monkeypatch):
    """
    Arms a competing submit. It runs right after the next request reads its
    answer key and before that request claims the question, so the request
    under test always loses.
    """
    real_lookup = answer_keys.lookup

    def arm(winner):
        fired = []

        def lookup(container_id, question_id):
            key = real_lookup(container_id, question_id)
            if not fired:
                fired.append(True)
                winner()
            return key

        monkeypatch.setattr(answer_keys, "lookup", lookup)

    return arm
