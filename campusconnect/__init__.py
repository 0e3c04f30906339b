"""Initialize the Flask app and its extensions."""

import json
import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from google.api_core.exceptions import GoogleAPICallError
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import USERS_COLLECTION
from .extensions import csrf, presence_tracker
from .serialization import FirestoreJSONProvider


def _int_env(name, default):
    return int(os.environ.get(name) or default)


def _load_credentials(app):
    """Find Firebase credentials: env JSON, then a local file, then ADC."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except ValueError as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    return cred, project_id


def _init_firebase(app):
    cred, project_id = _load_credentials(app)
    if not cred or firebase_admin._apps:
        return

    storage_bucket = app.config.get("FIREBASE_STORAGE_BUCKET")
    if not storage_bucket and project_id:
        storage_bucket = f"{project_id}.firebasestorage.app"
    database_url = app.config.get("FIREBASE_DATABASE_URL")
    if not database_url and project_id:
        database_url = f"https://{project_id}-default-rtdb.firebaseio.com"

    firebase_options = {"storageBucket": storage_bucket}
    if database_url:
        firebase_options["databaseURL"] = database_url
    if project_id:
        firebase_options["projectId"] = project_id

    try:
        firebase_admin.initialize_app(cred, firebase_options)
    except ValueError:
        # This can happen if the app is already initialized, which is fine.
        app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)
    app.json = FirestoreJSONProvider(app)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        ALLOWED_EMAIL_DOMAIN=os.environ.get("ALLOWED_EMAIL_DOMAIN"),
        FIREBASE_STORAGE_BUCKET=os.environ.get("FIREBASE_STORAGE_BUCKET"),
        FIREBASE_DATABASE_URL=os.environ.get("FIREBASE_DATABASE_URL"),
        PRESENCE_TIMEOUT_SECONDS=_int_env("PRESENCE_TIMEOUT_SECONDS", 60),
        PRESENCE_SWEEP_SECONDS=_int_env("PRESENCE_SWEEP_SECONDS", 15),
        NOTIFICATION_MAX_ATTEMPTS=_int_env("NOTIFICATION_MAX_ATTEMPTS", 3),
        MAX_CONTENT_LENGTH=10 * 1024 * 1024,
    )

    if test_config:
        app.config.update(test_config)

    # Service modules log under the package logger, which is app.logger
    app.logger.setLevel(logging.DEBUG if app.debug else logging.INFO)
    if not app.config.get("ALLOWED_EMAIL_DOMAIN"):
        app.logger.warning("ALLOWED_EMAIL_DOMAIN is not set, sign-in is disabled")

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Initialize extensions
    csrf.init_app(app)
    presence_tracker.init_app(app)
    if not app.config.get("TESTING"):
        presence_tracker.start()

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import presence as presence_bp

    app.register_blueprint(presence_bp.bp)

    from . import conversations as conversations_bp

    app.register_blueprint(conversations_bp.bp)

    from . import messaging as messaging_bp

    app.register_blueprint(messaging_bp.bp)

    from . import notifications as notifications_bp

    app.register_blueprint(notifications_bp.bp)

    from . import connections as connections_bp

    app.register_blueprint(connections_bp.bp)

    from . import feed as feed_bp

    app.register_blueprint(feed_bp.bp)

    from . import notices as notices_bp

    app.register_blueprint(notices_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the user data from Firestore and store it in g."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            db = firestore.client()
            user_doc = db.collection(USERS_COLLECTION).document(user_id).get()
            if user_doc.exists:
                g.user = user_doc.to_dict()
                g.user["uid"] = user_id  # Ensure uid is in the user object
            else:
                # User ID in session but no user in DB. Clear the session.
                session.clear()
                current_app.logger.warning(
                    f"User {user_id} in session but not found in Firestore."
                )
        except GoogleAPICallError as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            session.clear()  # Clear session on error to be safe

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
