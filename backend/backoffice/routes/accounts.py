# Overview: Flask API routes for customer current accounts (ledger).

# backend/backoffice/routes/accounts.py
"""
Current account routes.

Balances are read from the stored balance; statement running balances are
always computed by replaying the transaction history.

Ledger rows are append-only: there is no update or delete route. Mistakes
are corrected with an adjustment (or a credit/debit note) that offsets them.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import EngineError
from ..services import ledger_service
from ..validation import parse_cents, require_fields
from ..decorators import require_actor


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("/<int:account_id>")
def get_account_route(account_id: int):
    try:
        account = ledger_service.get_account(account_id)
        return jsonify({"account": account.to_dict()}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status


@accounts_bp.get("/<int:account_id>/transactions")
def list_transactions_route(account_id: int):
    try:
        ledger_service.get_account(account_id)
        transactions = ledger_service.list_transactions(account_id)
        return jsonify({"transactions": [tx.to_dict() for tx in transactions]}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status


@accounts_bp.get("/<int:account_id>/statement")
def statement_route(account_id: int):
    try:
        return jsonify(ledger_service.account_statement(account_id)), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build account statement")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.post("/<int:account_id>/adjustments")
@require_actor
def adjustment_route(account_id: int):
    """
    Manual ledger adjustment.

    Body: type ("debit" | "credit"), amount_cents (> 0), reason
    """
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, "type", "amount_cents", "reason")
        tx, account = ledger_service.post_adjustment(
            account_id,
            data["type"],
            parse_cents("amount_cents", data["amount_cents"]),
            data["reason"],
            user_id=g.actor_id,
        )
        return jsonify({"transaction": tx.to_dict(), "account": account.to_dict()}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to post ledger adjustment")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.post("/<int:account_id>/recompute")
@require_actor
def recompute_route(account_id: int):
    """Rebuild the stored balance and snapshots from the transaction history."""
    try:
        result = ledger_service.recompute_balance(account_id)
        return jsonify({
            "account_id": result.account_id,
            "balance_cents": result.balance_cents,
            "previous_balance_cents": result.previous_balance_cents,
            "drift_cents": result.drift_cents,
            "transaction_count": result.transaction_count,
            "snapshots_rewritten": result.snapshots_rewritten,
        }), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to recompute account balance")
        return jsonify({"error": "Internal server error"}), 500
