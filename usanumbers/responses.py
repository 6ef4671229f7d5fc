from datetime import datetime, timezone

from flask import jsonify


def format_response(success, data=None, message=""):
    return {
        "success": success,
        "data": data,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


def ok(data=None, message="", status=200):
    return jsonify(format_response(True, data, message)), status


def fail(message, status, data=None):
    return jsonify(format_response(False, data, message)), status
