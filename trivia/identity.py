# trivia/identity.py
"""Who is calling: a signed-in user, or a guest tracked by the session cookie."""

from __future__ import annotations

import uuid

from flask import session
from flask_login import current_user

_GUEST_KEY = "guest_id"


def is_authenticated() -> bool:
    return bool(getattr(current_user, "is_authenticated", False))


def current_user_id() -> str | None:
    if not is_authenticated():
        return None
    return str(current_user.id)


def current_user_pk() -> int | None:
    if not is_authenticated():
        return None
    try:
        return int(current_user.id)
    except (TypeError, ValueError):
        return None


def current_username() -> str | None:
    if not is_authenticated():
        return None
    return getattr(current_user, "username", None)


def owner_id() -> str:
    """Owner id for ephemeral state: the user id when signed in, else a per-session guest id."""
    uid = current_user_id()
    if uid:
        return uid
    gid = session.get(_GUEST_KEY)
    if not gid:
        gid = f"guest:{uuid.uuid4().hex}"
        session[_GUEST_KEY] = gid
    return gid
