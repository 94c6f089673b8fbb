"""
Health routes for the capture pipeline.

Endpoints:
    GET /health/error-capture  — sink reachability + dispatcher stats
    GET /metrics/error-capture  — Prometheus exposition of pipeline metrics
"""

from flask import Blueprint, Response, current_app, jsonify

from ..observability.metrics import MetricsCollector

health_bp = Blueprint("http_error_capture_health", __name__)


def _extension():
    return current_app.extensions["http_error_capture"]


@health_bp.route("/health/error-capture")
def error_capture_health():
    """Liveness probe for the event sink.

    Returns 200 when the publisher reports healthy, 503 otherwise.  The
    answer only describes error delivery, not the host application.
    """
    service = _extension().service
    healthy = service.health_check()
    payload = {
        "status": "healthy" if healthy else "degraded",
        "enabled": service.settings.enabled,
        "publisher": type(service.publisher).__name__,
        "dispatcher": service.dispatcher.stats(),
    }
    return jsonify(payload), 200 if healthy else 503


@health_bp.route("/metrics/error-capture")
def error_capture_metrics():
    mc = MetricsCollector()
    return Response(mc.prometheus_exposition(), mimetype="text/plain; charset=utf-8")
