# Overview: Service-layer operations for credit/debit notes (manual ledger adjustments).

from __future__ import annotations

from flask import current_app

from ..errors import CustomerNotFound, InvalidNoteState, NoteNotFound, SaleNotFound, ValidationError
from ..extensions import db
from ..models import Customer, Note, Sale
from backoffice.time_utils import utcnow
from . import ledger_service
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_document_number
from .ledger_service import Credit, Debit, opposite

NOTE_CREDIT = "credit"
NOTE_DEBIT = "debit"

NOTE_STATUS_ACTIVE = "active"
NOTE_STATUS_VOIDED = "voided"


def get_note(note_id: int, *, lock: bool = False) -> Note:
    query = db.session.query(Note).filter_by(id=note_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    note = query.first()
    if note is None:
        raise NoteNotFound(note_id)
    return note


def _entry(note_type: str, amount_cents: int):
    # Credit note: the business owes the customer (balance goes down)
    return Credit(amount_cents) if note_type == NOTE_CREDIT else Debit(amount_cents)


def create_note(
    note_type: str,
    amount_cents: int,
    reason: str,
    *,
    customer_id: int | None = None,
    related_sale_id: int | None = None,
    user_id: int | None = None,
) -> Note:
    """
    Issue a credit or debit note. When the customer has a current account,
    exactly one ledger transaction is posted with the note.
    """
    if note_type not in (NOTE_CREDIT, NOTE_DEBIT):
        raise ValidationError("type must be 'credit' or 'debit'", details={"type": note_type})
    if amount_cents <= 0:
        raise ValidationError("amount must be > 0")
    if not reason:
        raise ValidationError("reason required")

    def _op():
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise CustomerNotFound(customer_id)
        if related_sale_id is not None and db.session.get(Sale, related_sale_id) is None:
            raise SaleNotFound(related_sale_id)

        account = ledger_service.account_for_customer(customer_id)
        note = Note(
            number=next_document_number(
                document_type=f"{note_type}_note",
                point_of_sale=current_app.config.get("POINT_OF_SALE", 1),
            ),
            note_type=note_type,
            status=NOTE_STATUS_ACTIVE,
            customer_id=customer_id,
            account_id=account.id if account else None,
            related_sale_id=related_sale_id,
            amount_cents=amount_cents,
            reason=reason,
            user_id=user_id,
        )
        db.session.add(note)
        db.session.flush()

        if account is not None:
            tx = ledger_service.post(
                account.id,
                _entry(note_type, amount_cents),
                f"{note_type.capitalize()} note {note.number}: {reason}",
                note_id=note.id,
                sale_id=related_sale_id,
                user_id=user_id,
                commit=False,
            )
            note.transaction_id = tx.id

        db.session.commit()
        return note

    return run_with_retry(_op)


def void_note(note_id: int, *, reason: str, user_id: int | None = None) -> Note:
    """
    Void a note by posting the opposite ledger entry.

    Ledger rows are never deleted; the original transaction and its
    reversal both stay in the history, so replay still matches the balance.
    """
    if not reason:
        raise ValidationError("reason required")

    def _op():
        note = get_note(note_id, lock=True)
        if note.status == NOTE_STATUS_VOIDED:
            raise InvalidNoteState(f"Note {note.number} is already voided", details={"note_id": note.id})

        if note.transaction_id is not None:
            reversal = ledger_service.post(
                note.account_id,
                opposite(_entry(note.note_type, note.amount_cents)),
                f"Void of note {note.number}: {reason}",
                note_id=note.id,
                user_id=user_id,
                commit=False,
            )
            note.reversal_transaction_id = reversal.id

        note.status = NOTE_STATUS_VOIDED
        note.voided_at = utcnow()
        note.void_reason = reason
        db.session.commit()
        current_app.logger.info("Note %s voided by user %s", note.number, user_id)
        return note

    return run_with_retry(_op)
