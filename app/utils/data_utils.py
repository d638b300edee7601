"""
Data utilities
Request payload helpers
"""
from flask import request

from core.errors import ValidationError


def get_request_data(required=True):
    """Return the request body as a dict from JSON or form data."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            if required:
                raise ValidationError('request body is not valid JSON')
            return {}
        return data
    if request.form:
        return request.form.to_dict()
    if required and request.get_data(cache=True):
        raise ValidationError('request body must be JSON')
    return {}


def parse_student_id(value):
    """Student ids in URLs are integers."""
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f'invalid student id: {value}') from exc
