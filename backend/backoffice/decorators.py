# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


def require_actor(f):
    """
    Establish the acting user for attribution.

    Sets g.actor_id from the X-Actor-Id header. Stock movements, ledger
    transactions, orders and sales record this id as their user.

    Returns 401 if the header is missing or not a positive integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get("X-Actor-Id", "").strip()

        if not raw:
            return jsonify({"error": "X-Actor-Id header required"}), 401

        if not raw.isdigit() or int(raw) <= 0:
            return jsonify({"error": "X-Actor-Id must be a positive integer"}), 401

        g.actor_id = int(raw)

        return f(*args, **kwargs)

    return decorated_function
