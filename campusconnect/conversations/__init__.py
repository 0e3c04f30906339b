"""The conversations blueprint."""

from flask import Blueprint

bp = Blueprint("conversations", __name__, url_prefix="/conversations")

from . import routes  # noqa: E402

__all__ = ["routes"]
