"""The feed blueprint."""

from flask import Blueprint

bp = Blueprint("feed", __name__, url_prefix="/feed")

from . import routes  # noqa: E402

__all__ = ["routes"]
