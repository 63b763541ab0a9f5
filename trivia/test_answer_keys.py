from datetime import timedelta

from trivia import answer_keys
from trivia.answer_keys import KeyEntry
from trivia.extensions import db
from trivia.models import AnswerKeyEntry, _utcnow


def _entry(qid, answer="A"):
    return KeyEntry(question_id=qid, answer=answer, question_type="multiple_choice", prompt=f"{qid}?")


def _expire(container_id):
    (AnswerKeyEntry.query
     .filter_by(container_id=container_id)
     .update({"expires_at": _utcnow() - timedelta(seconds=1)}))
    db.session.commit()


def test_store_and_lookup(ctx):
    answer_keys.store("c1", [_entry("q1", "B")], 60)
    key = answer_keys.lookup("c1", "q1")
    assert key.answer == "B"
    assert key.prompt == "q1?"
    assert answer_keys.lookup("c1", "q2") is None
    assert answer_keys.lookup("c2", "q1") is None


def test_append_keeps_order_and_extends_expiry(ctx):
    answer_keys.store("c1", [_entry("q1")], 60)
    first_expiry = AnswerKeyEntry.query.filter_by(question_id="q1").one().expires_at
    answer_keys.store("c1", [_entry("q2"), _entry("q3")], 3600)
    assert [k.question_id for k in answer_keys.entries_for("c1")] == ["q1", "q2", "q3"]
    expiries = {r.expires_at for r in AnswerKeyEntry.query.filter_by(container_id="c1")}
    assert len(expiries) == 1
    assert expiries.pop() > first_expiry


def test_expired_container_looks_missing(ctx):
    answer_keys.store("c1", [_entry("q1")], 60)
    _expire("c1")
    assert answer_keys.lookup("c1", "q1") is None
    assert answer_keys.entries_for("c1") == []


def test_store_after_expiry_starts_fresh(ctx):
    answer_keys.store("c1", [_entry("q1")], 60)
    _expire("c1")
    answer_keys.store("c1", [_entry("q1", "D")], 60)
    assert answer_keys.lookup("c1", "q1").answer == "D"


def test_invalidate_and_purge(ctx):
    answer_keys.store("c1", [_entry("q1")], 60)
    answer_keys.store("c2", [_entry("q1")], 60)
    answer_keys.store("c3", [_entry("q1")], 60)
    assert answer_keys.invalidate("c1", commit=True) == 1
    assert answer_keys.lookup("c1", "q1") is None
    _expire("c2")
    assert answer_keys.purge_expired() == 1
    assert AnswerKeyEntry.query.count() == 1
