from datetime import timedelta

import pytest

from trivia import game_state
from trivia.errors import InvalidStateError, NotFoundError, UnauthorizedError
from trivia.extensions import db
from trivia.models import ActiveGame, _utcnow


def _expire(state_id):
    ActiveGame.query.filter_by(id=state_id).update({"expires_at": _utcnow() - timedelta(seconds=1)})
    db.session.commit()


def test_create_and_load(ctx):
    snap = game_state.create("survival", "7", {"streak": 0}, 60)
    db.session.commit()
    loaded = game_state.load_owned("survival", snap.id, "7")
    assert loaded.data == {"streak": 0}
    assert loaded.version == 1


def test_wrong_kind_or_owner(ctx):
    snap = game_state.create("survival", "7", {}, 60)
    db.session.commit()
    with pytest.raises(NotFoundError):
        game_state.load("jeopardy", snap.id)
    with pytest.raises(UnauthorizedError):
        game_state.load_owned("survival", snap.id, "8")


def test_save_is_compare_and_swap(ctx):
    snap = game_state.create("survival", "7", {"streak": 0}, 60)
    db.session.commit()
    first = game_state.load("survival", snap.id)
    second = game_state.load("survival", snap.id)

    game_state.save(first, {"streak": 1})
    db.session.commit()
    with pytest.raises(InvalidStateError):
        game_state.save(second, {"streak": 5})
    db.session.rollback()

    current = game_state.load("survival", snap.id)
    assert current.data == {"streak": 1}
    assert current.version == 2


def test_delete_refuses_a_stale_snapshot(ctx):
    snap = game_state.create("quiz", "7", {}, 60)
    db.session.commit()
    game_state.save(snap, {"answered": 1})
    db.session.commit()
    with pytest.raises(InvalidStateError):
        game_state.delete(snap)


def test_expired_state_is_gone(ctx):
    snap = game_state.create("quiz", "7", {}, 60)
    db.session.commit()
    _expire(snap.id)
    with pytest.raises(NotFoundError):
        game_state.load("quiz", snap.id)
    with pytest.raises(InvalidStateError):
        game_state.save(snap, {"x": 1})
    db.session.rollback()
    assert game_state.purge_expired() == 1


def test_loaded_data_is_a_copy(ctx):
    snap = game_state.create("quiz", "7", {"ids": ["a"]}, 60)
    db.session.commit()
    loaded = game_state.load("quiz", snap.id)
    loaded.data["ids"].append("b")
    assert game_state.load("quiz", snap.id).data == {"ids": ["a"]}
