"""Core module for the campusconnect application."""

from .subscription import Subscription
from .types import FirestoreDocument

__all__ = ["FirestoreDocument", "Subscription"]
