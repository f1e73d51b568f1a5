from flask import request

from ..errors import ValidationError


def json_body():
    """Request JSON as a dict; a missing or unparseable body reads as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
