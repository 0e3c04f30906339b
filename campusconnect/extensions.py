"""Flask extensions for the application."""
from flask_wtf.csrf import CSRFProtect

from .presence.tracker import PresenceTracker

csrf = CSRFProtect()
presence_tracker = PresenceTracker()
