"""The connections blueprint."""

from flask import Blueprint

bp = Blueprint("connections", __name__, url_prefix="/connections")

from . import routes  # noqa: E402

__all__ = ["routes"]
