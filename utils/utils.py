import logging
from functools import wraps

from flask import request, jsonify, g

from classes.exceptions import ValidationError
from utils.tokens import decode_jwt

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def _request_token():
    token = request.cookies.get("access_token")
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def _authenticate():
    token = _request_token()
    if not token:
        logger.debug("No access token on %s %s", request.method, request.path)
        return None
    return decode_jwt(token)


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if _authenticate() is None:
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _authenticate()
        if user is None:
            return jsonify({"error": "Unauthorized"}), 401
        if user.get("role") != ADMIN_ROLE:
            logger.warning("User %s tried an admin action on %s", user.get("user_id"), request.path)
            return jsonify({"error": "Forbidden"}), 403
        return f(*args, **kwargs)

    return decorated_function


def current_user_id():
    user = getattr(g, "user", None) or {}
    user_id = user.get("user_id")
    return str(user_id) if user_id is not None else None


def is_admin_request():
    user = _authenticate()
    return user is not None and user.get("role") == ADMIN_ROLE


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def int_arg(name, required=True):
    value = request.args.get(name, type=int)
    if value is None and required:
        raise ValidationError(f"{name} query parameter must be an integer.")
    return value


def bool_arg(name):
    return request.args.get(name, "").strip().lower() in ("1", "true", "yes")
