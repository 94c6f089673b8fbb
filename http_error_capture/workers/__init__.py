"""
Background worker threads.

``CaptureDispatcher`` runs capture tasks off the request thread.
"""

from .dispatcher import CaptureDispatcher

__all__ = ["CaptureDispatcher"]
