from flask import Blueprint

carpetas_bp = Blueprint("carpetas", __name__, url_prefix="/api")

from app.carpetas import routes  # noqa: E402,F401
