# Overview: Flask API routes for credit/debit notes.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import EngineError
from ..services import note_service
from ..validation import parse_cents, require_fields
from ..decorators import require_actor


notes_bp = Blueprint("notes", __name__, url_prefix="/api/notes")


@notes_bp.post("/")
@require_actor
def create_note_route():
    """Body: type ("credit" | "debit"), amount_cents, reason, customer_id?, related_sale_id?"""
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, "type", "amount_cents", "reason")
        note = note_service.create_note(
            data["type"],
            parse_cents("amount_cents", data["amount_cents"]),
            data["reason"],
            customer_id=data.get("customer_id"),
            related_sale_id=data.get("related_sale_id"),
            user_id=g.actor_id,
        )
        return jsonify({"note": note.to_dict()}), 201

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create note")
        return jsonify({"error": "Internal server error"}), 500


@notes_bp.get("/<int:note_id>")
def get_note_route(note_id: int):
    try:
        note = note_service.get_note(note_id)
        return jsonify({"note": note.to_dict()}), 200
    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status


@notes_bp.post("/<int:note_id>/void")
@require_actor
def void_note_route(note_id: int):
    """Void a note; its ledger effect is reversed by a compensating entry. Body: reason."""
    try:
        data = request.get_json(silent=True) or {}
        note = note_service.void_note(note_id, reason=data.get("reason"), user_id=g.actor_id)
        return jsonify({"note": note.to_dict()}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to void note")
        return jsonify({"error": "Internal server error"}), 500
