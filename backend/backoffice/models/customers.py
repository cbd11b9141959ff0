from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data. A customer may have at most one current account.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_document_id", "document_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    document_id = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    account = db.relationship("Account", back_populates="customer", uselist=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "document_id": self.document_id,
            "account_id": self.account.id if self.account else None,
            "created_at": to_utc_z(self.created_at),
        }


class Account(db.Model):
    """
    Customer current account.

    Sign convention: positive balance = customer owes the business,
    negative = credit in the customer's favor.

    INVARIANT: balance_cents equals the chronological replay of this
    account's transactions (debit adds, credit subtracts). See
    services.ledger_service.recompute_balance.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint("customer_id", name="uq_accounts_customer"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    # NULL = no limit
    credit_limit_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", back_populates="account")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "balance_cents": self.balance_cents,
            "credit_limit_cents": self.credit_limit_cents,
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class AccountTransaction(db.Model):
    """
    Immutable ledger row.

    amount_cents is always a non-negative magnitude; entry_type carries the
    sign. balance_after_cents is a display cache rebuilt by recompute_balance,
    never the source of truth.
    """
    __tablename__ = "account_transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_account_transactions_amount_non_negative"),
        db.CheckConstraint("entry_type IN ('debit', 'credit')", name="ck_account_transactions_entry_type"),
        db.Index("ix_account_transactions_account_occurred", "account_id", "occurred_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    entry_type = db.Column(db.String(8), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    balance_after_cents = db.Column(db.Integer, nullable=False, default=0)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    note_id = db.Column(db.Integer, db.ForeignKey("notes.id"), nullable=True, index=True)
    description = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.Integer, nullable=True)
    # Business time; replay order is (occurred_at, id)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("Account", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "entry_type": self.entry_type,
            "amount_cents": self.amount_cents,
            "balance_after_cents": self.balance_after_cents,
            "sale_id": self.sale_id,
            "note_id": self.note_id,
            "description": self.description,
            "user_id": self.user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class Note(db.Model):
    """
    Credit/debit memo: a manual ledger adjustment not tied to a sale's
    payment flow. Voiding posts a compensating entry; ledger rows are
    never deleted.
    """
    __tablename__ = "notes"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_notes_number"),
        db.CheckConstraint("amount_cents > 0", name="ck_notes_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(32), nullable=False)
    note_type = db.Column(db.String(8), nullable=False)  # credit | debit
    status = db.Column(db.String(16), nullable=False, default="active")  # active | voided

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True, index=True)
    related_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)

    # Plain ids: account_transactions.note_id already points back here
    transaction_id = db.Column(db.Integer, nullable=True)
    reversal_transaction_id = db.Column(db.Integer, nullable=True)

    user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "note_type": self.note_type,
            "status": self.status,
            "customer_id": self.customer_id,
            "account_id": self.account_id,
            "related_sale_id": self.related_sale_id,
            "amount_cents": self.amount_cents,
            "reason": self.reason,
            "transaction_id": self.transaction_id,
            "reversal_transaction_id": self.reversal_transaction_id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "void_reason": self.void_reason,
        }
