from flask import Blueprint

survival_bp = Blueprint("survival", __name__, url_prefix="/api/survival")

from . import routes  # noqa: E402,F401
