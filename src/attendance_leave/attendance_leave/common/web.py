from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from functools import wraps

from flask import jsonify, session

from ..core.enums import Role
from ..core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ADMIN_ROLES = {Role.ADMIN.value, Role.SUPERADMIN.value}


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "employee_id" not in session:
            return jsonify({"error": "Authentication required"}), 401
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "employee_id" not in session:
            return jsonify({"error": "Authentication required"}), 401
        if session.get("role") not in ADMIN_ROLES:
            return jsonify({"error": "Forbidden"}), 403
        return view(*args, **kwargs)

    return wrapper


def _plain(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    return value


def to_json(obj):
    """Dataclasses (nested) to JSON-ready dicts."""
    if obj is None:
        return None
    if is_dataclass(obj):
        return _plain(asdict(obj))
    return _plain(obj)


def error_response(exc: Exception):
    """Map engine exceptions onto JSON error responses."""
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    logger.error("request failed: %s", exc, exc_info=exc)
    return jsonify({"error": "Internal error"}), 500
