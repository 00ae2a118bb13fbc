# utils/decorators.py
import logging
from functools import wraps

from flask import request, g

from utils.errors import BadRequest

logger = logging.getLogger(__name__)


def _present(value):
    return isinstance(value, str) and value.strip() != ''


def require_json_fields(*fields, message='Missing required fields', labels=None):
    """
    Decorator to check that the JSON body carries every field as a non-empty
    string. On success the parsed body is available as g.payload; otherwise
    BadRequest is raised with a {label: missing} map in its details.
    """
    labels = labels or {}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                data = {}

            missing = {labels.get(name, name): not _present(data.get(name)) for name in fields}
            if any(missing.values()):
                logger.warning("Missing required fields on %s: %s", request.path,
                               [name for name, absent in missing.items() if absent])
                raise BadRequest(message, details=missing)

            g.payload = data
            return f(*args, **kwargs)

        return decorated_function

    return decorator
