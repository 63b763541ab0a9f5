from flask import Blueprint

jeopardy_bp = Blueprint("jeopardy", __name__, url_prefix="/api/jeopardy")

from . import routes  # noqa: E402,F401
