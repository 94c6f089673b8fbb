"""
Flask Blueprints exposed by the capture pipeline.

Each blueprint reaches the extension through
``current_app.extensions['http_error_capture']``.
"""

from .health_bp import health_bp

__all__ = ["health_bp"]
