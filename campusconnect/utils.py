"""Utility functions for the application."""

from flask import jsonify, request


def form_error_response(form):
    """Return a 400 JSON response listing a form's field errors."""
    return jsonify({"error": "Invalid input.", "fields": form.errors}), 400


def json_list(key):
    """Read a list of non-empty strings from the JSON body."""
    data = request.get_json(silent=True) or {}
    values = data.get(key) or []
    if isinstance(values, str):
        values = [values]
    return [str(value).strip() for value in values if str(value).strip()]
