"""Web framework integrations."""

from .flask_capture import HttpErrorCapture

__all__ = ["HttpErrorCapture"]
