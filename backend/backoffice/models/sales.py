from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_INVOICED = "invoiced"


class Sale(db.Model):
    """
    Immutable invoice record, created once by services.invoice_service.

    WHY: order_id is unique so an order can back at most one sale even if
    two conversions race past the status check.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_sales_document_number"),
        db.UniqueConstraint("order_id", name="uq_sales_order"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(64), nullable=False)
    # remito | factura_a | factura_b | factura_c | ticket
    document_type = db.Column(db.String(16), nullable=False, default="remito")
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    # Totals (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    surcharge_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    surcharge_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    # cash | transfer | card | current_account | mixed
    payment_method = db.Column(db.String(16), nullable=False)
    # Identifier returned by the tax authority, when one is configured
    external_reference = db.Column(db.String(64), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
    )
    payments = db.relationship(
        "SalePayment",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SalePayment.id",
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "document_type": self.document_type,
            "status": self.status,
            "customer_id": self.customer_id,
            "account_id": self.account_id,
            "order_id": self.order_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_percent": str(self.discount_percent),
            "discount_cents": self.discount_cents,
            "surcharge_percent": str(self.surcharge_percent),
            "surcharge_cents": self.surcharge_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "external_reference": self.external_reference,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    # Input order; the proration remainder lands on the highest position
    position = db.Column(db.Integer, nullable=False)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    surcharge_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "position": self.position,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "surcharge_cents": self.surcharge_cents,
            "total_cents": self.total_cents,
        }


class SalePayment(db.Model):
    """One payment split of a sale (cash, transfer, card or current_account)."""
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_sale_payments_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "account_id": self.account_id,
        }


class DocumentSequence(db.Model):
    """
    Per-(document type, point of sale) counter for invoice and note numbers.

    Allocation happens under an atomic UPDATE in services.document_service.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "point_of_sale", name="uq_doc_sequences_type_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    point_of_sale = db.Column(db.Integer, nullable=False, default=1)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
