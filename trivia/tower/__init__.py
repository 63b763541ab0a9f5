from flask import Blueprint

tower_bp = Blueprint("tower", __name__, url_prefix="/api/tower")

from . import routes  # noqa: E402,F401
