import uuid

from firebase_admin import auth, firestore
from firebase_admin.exceptions import FirebaseError
from flask import current_app, g, jsonify, request, session

from campusconnect.presence.tracker import get_presence
from campusconnect.storage import BlobStore

from . import bp
from .decorators import login_required
from .services import (
    end_session,
    is_allowed_identity,
    purge_user,
    reject_identity,
    start_session,
)


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Called by the client after a successful Firebase sign-in.
    It receives the ID token, applies the institutional domain gate and
    creates a server-side session with a fresh presence connection.
    """
    allowed_domain = current_app.config.get("ALLOWED_EMAIL_DOMAIN")
    if not allowed_domain:
        current_app.logger.error("ALLOWED_EMAIL_DOMAIN is not set, refusing sign-in")
        return jsonify({"status": "error", "message": "Sign-in is not available."}), 503

    id_token = (request.get_json(silent=True) or {}).get("idToken")
    if not id_token:
        return jsonify({"status": "error", "message": "Missing idToken."}), 400
    try:
        claims = auth.verify_id_token(id_token)
    except (ValueError, FirebaseError) as e:
        current_app.logger.error(f"Error during session login: {e}")
        return jsonify({"status": "error", "message": "Invalid token."}), 401

    if not is_allowed_identity(claims, allowed_domain):
        current_app.logger.warning(
            f"Rejected sign-in from {claims.get('email')} for {claims['uid']}"
        )
        reject_identity(claims["uid"])
        session.clear()
        message = f"Please sign in with your verified @{allowed_domain} account."
        return jsonify({"status": "error", "message": message}), 403

    db = firestore.client()
    connection_id = uuid.uuid4().hex
    user = start_session(db, get_presence(), claims, connection_id)
    session["user_id"] = user["uid"]
    session["connection_id"] = connection_id
    return jsonify(
        {
            "status": "success",
            "user": {
                "uid": user["uid"],
                "displayName": user["displayName"],
                "photoURL": user["photoURL"],
            },
        }
    )


@bp.route("/logout", methods=["POST"])
def logout():
    """Mark the user offline and clear the server-side session."""
    user_id = session.get("user_id")
    connection_id = session.get("connection_id")
    if user_id and connection_id:
        end_session(get_presence(), user_id, connection_id)
    session.clear()
    return jsonify({"status": "success"})


@bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(g.user)


@bp.route("/account", methods=["DELETE"])
@login_required
def delete_account():
    """Delete the signed-in account and everything that references it."""
    db = firestore.client()
    user_id = g.user["uid"]
    summary = purge_user(db, user_id, BlobStore())
    end_session(get_presence(), user_id, session.get("connection_id", ""))
    try:
        auth.delete_user(user_id)
    except FirebaseError as e:
        current_app.logger.error(f"Error deleting auth account {user_id}: {e}")
    session.clear()
    return jsonify({"status": "success", "purged": summary})
