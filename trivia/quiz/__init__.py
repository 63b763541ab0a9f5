from flask import Blueprint

quiz_bp = Blueprint("quiz", __name__, url_prefix="/api")

from . import routes  # noqa: E402,F401
