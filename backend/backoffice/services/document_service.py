# Overview: Service-layer operations for document numbering (invoices, delivery notes, credit/debit notes).

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import DocumentSequence


# Letter printed in the document number for each document type
DOCUMENT_LETTERS = {
    "factura_a": "A",
    "factura_b": "B",
    "factura_c": "C",
    "remito": "R",
    "ticket": "T",
    "credit_note": "NC",
    "debit_note": "ND",
}

SALE_DOCUMENT_TYPES = ("remito", "factura_a", "factura_b", "factura_c", "ticket")


def _bump(document_type: str, point_of_sale: int) -> int | None:
    """Atomic UPDATE of an existing sequence row; None when the row does not exist yet."""
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.point_of_sale == point_of_sale,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, point_of_sale=point_of_sale)
        .scalar()
    )
    return current - 1


def _allocate(document_type: str, point_of_sale: int) -> int:
    number = _bump(document_type, point_of_sale)
    if number is not None:
        return number

    # First document of this type. The insert runs in a savepoint: when a
    # concurrent transaction created the row first, only the savepoint is
    # rolled back and the number comes from the now-existing row.
    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(document_type=document_type, point_of_sale=point_of_sale, next_number=2))
        return 1
    except IntegrityError:
        number = _bump(document_type, point_of_sale)
        if number is None:
            raise
        return number


def next_document_number(*, document_type: str, point_of_sale: int = 1) -> str:
    """
    Allocate the next number for a document type inside the caller's
    transaction, formatted "<letter>-<pos:5>-<number:8>" (e.g. A-00001-00000042).

    The UPDATE takes a row lock on the sequence, so numbers are gap-free
    per committed transaction and never reused.
    """
    if document_type not in DOCUMENT_LETTERS:
        raise ValidationError(
            f"Unknown document type '{document_type}'",
            details={"allowed": sorted(DOCUMENT_LETTERS)},
        )
    if point_of_sale < 1:
        raise ValidationError("point_of_sale must be >= 1")

    number = _allocate(document_type, point_of_sale)
    return f"{DOCUMENT_LETTERS[document_type]}-{point_of_sale:05d}-{number:08d}"
