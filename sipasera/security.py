# -*- coding: utf-8 -*-
from functools import wraps
from flask import flash, jsonify, request
from flask_login import current_user


def payload() -> dict:
    """JSON body or form fields of the current request."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def reply(message: str | None = None, category: str = "success", status: int = 200, **data):
    """JSON answer; the message also goes to the flash queue for the UI."""
    if message:
        flash(message, category)
    body = {"ok": status < 400}
    if message:
        body["message"] = message
    body.update(data)
    return jsonify(body), status


def roles_required(*roles):
    """
    Not logged in -> 401.
    Role not in the list -> 403 and a flash "Insufficient permissions".
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return reply("Please log in first.", "warning", 401, error="unauthorized")
            if current_user.role not in roles:
                return reply("Insufficient permissions.", "warning", 403, error="forbidden")
            return f(*args, **kwargs)
        return wrapper
    return decorator
