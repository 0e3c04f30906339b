"""The presence blueprint."""

from flask import Blueprint

bp = Blueprint("presence", __name__, url_prefix="/presence")

from . import routes  # noqa: E402

__all__ = ["routes"]
