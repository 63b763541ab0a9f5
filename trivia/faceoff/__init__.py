from flask import Blueprint

faceoff_bp = Blueprint("faceoff", __name__, url_prefix="/api/faceoff")

from . import routes  # noqa: E402,F401
