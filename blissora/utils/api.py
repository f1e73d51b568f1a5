# --- blissora/utils/api.py ---
from flask import jsonify

from .clock import utcnow


def _envelope(status, message, data):
    return {
        "status": status,
        "message": message,
        "data": {
            **(data or {}),
            "server_time": utcnow().strftime("%Y-%m-%d %H:%M:%S"),
        },
    }


def api_ok(message, data=None):
    return _envelope(True, message, data)


def api_error(message, data=None):
    return _envelope(False, message, data)


# unified response helper
def ok(message, data=None, status=200):
    r = jsonify(api_ok(message, data)); r.status_code = status; return r
