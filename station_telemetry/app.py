"""Log collection and viewer service.

Receives entries forwarded by dashboard sessions on ``POST /api/logs`` and
serves them back, filtered or exported, to the log viewer panel.
"""

import logging

from flask import Flask, Response, jsonify, request

from station_telemetry.config import Config
from station_telemetry.exporter import export_filename, get_formatter
from station_telemetry.filters import LogFilter
from station_telemetry.store import LogStore
from station_telemetry.validator import LogEntryValidator

logger = logging.getLogger(__name__)

_MIME_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
}


def create_app(config=None, store=None):
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = Config.from_env()

    validator = LogEntryValidator()
    if store is None:
        store = LogStore(max_logs=config["storage"]["max_logs"])

    # Store components on app for access in tests
    app.config["components"] = {
        "config": config,
        "validator": validator,
        "store": store,
    }

    # --- Routes ---

    @app.route("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "total_logs": store.total_count,
            "current_stored": len(store),
        })

    @app.route("/api/logs", methods=["POST"])
    def ingest_log():
        payload = request.get_json(force=True, silent=True)
        if payload is None:
            return jsonify({"status": "invalid", "errors": ["Body is not valid JSON"]}), 400

        entry, errors = validator.parse(payload)
        if entry is None:
            logger.debug("Rejected log entry: %s", errors)
            return jsonify({"status": "invalid", "errors": errors}), 400

        store.add(entry)
        return jsonify({"status": "accepted"}), 201

    @app.route("/api/logs", methods=["GET"])
    def list_logs():
        try:
            log_filter = LogFilter.from_params(request.args)
            limit = request.args.get("limit", type=int)
        except ValueError as exc:
            return jsonify({"status": "invalid", "errors": [str(exc)]}), 400

        entries = store.query(log_filter)
        if limit is not None and limit >= 0:
            entries = entries[:limit]
        return jsonify({
            "logs": [e.to_dict() for e in entries],
            "count": len(entries),
        })

    @app.route("/api/logs", methods=["DELETE"])
    def clear_logs():
        store.clear()
        logger.info("Collected logs cleared")
        return jsonify({"status": "cleared"})

    @app.route("/api/logs/export")
    def export_logs():
        fmt = request.args.get("format", "json").lower()
        try:
            formatter = get_formatter(fmt)
        except ValueError as exc:
            return jsonify({"status": "invalid", "errors": [str(exc)]}), 400

        body = formatter(store.query())
        return Response(
            body,
            mimetype=_MIME_TYPES[fmt],
            headers={
                "Content-Disposition": f"attachment; filename={export_filename(fmt)}",
            },
        )

    @app.route("/api/validation-stats")
    def validation_stats():
        return jsonify(validator.get_stats())

    return app


# For gunicorn: `gunicorn 'station_telemetry.app:create_app()'`
if __name__ == "__main__":
    from station_telemetry.console import configure_logging

    cfg = Config.from_env()
    configure_logging(cfg["logging"]["level"], cfg["logging"]["format"])
    server = cfg["server"]
    create_app(cfg).run(host=server["host"], port=server["port"], debug=server["debug"])
