# Overview: Service-layer operations for the customer current-account ledger.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from flask import current_app

from ..errors import AccountNotFound, CustomerNotFound, UnknownEntryType, ValidationError
from ..extensions import db
from ..models import Account, AccountTransaction, Customer
from backoffice.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
"""
Current-Account Ledger Invariants (authoritative)

- AccountTransaction rows are append-only: never updated (except the
  balance_after_cents display cache) and never deleted.
- amount_cents is a non-negative magnitude; the entry type carries the sign.
  Debit increases what the customer owes, Credit decreases it.
- Account.balance_cents == fold over the account's transactions ordered by
  (occurred_at, id): balance += signed amount.
- post() updates the balance incrementally under a row lock.
  recompute_balance() is the repair path: it replays the full history,
  rewrites every balance_after_cents and the stored balance, and is idempotent.
"""


# =============================================================================
# ENTRY TYPES
# =============================================================================

@dataclass(frozen=True)
class Debit:
    amount_cents: int
    tag = "debit"

    @property
    def signed_cents(self) -> int:
        return self.amount_cents


@dataclass(frozen=True)
class Credit:
    amount_cents: int
    tag = "credit"

    @property
    def signed_cents(self) -> int:
        return -self.amount_cents


LedgerEntry = Union[Debit, Credit]

ENTRY_TYPES = {Debit.tag: Debit, Credit.tag: Credit}


def make_entry(entry_type: str, amount_cents: int) -> LedgerEntry:
    """Build an entry from an API-level tag; rejects anything but debit/credit."""
    cls = ENTRY_TYPES.get(entry_type)
    if cls is None:
        raise ValidationError("type must be 'debit' or 'credit'", details={"type": entry_type})
    return cls(amount_cents)


def entry_for(tx: AccountTransaction) -> LedgerEntry:
    """Decode a stored row. Unknown tags fail loudly instead of being skipped."""
    cls = ENTRY_TYPES.get(tx.entry_type)
    if cls is None:
        raise UnknownEntryType(tx.id, tx.entry_type)
    return cls(tx.amount_cents)


def opposite(entry: LedgerEntry) -> LedgerEntry:
    if isinstance(entry, Debit):
        return Credit(entry.amount_cents)
    return Debit(entry.amount_cents)


# =============================================================================
# ACCOUNTS
# =============================================================================

def get_account(account_id: int, *, lock: bool = False) -> Account:
    query = db.session.query(Account).filter_by(id=account_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    account = query.first()
    if account is None:
        raise AccountNotFound(account_id)
    return account


def account_for_customer(customer_id: int | None) -> Account | None:
    if customer_id is None:
        return None
    return db.session.query(Account).filter_by(customer_id=customer_id).first()


def open_account(customer_id: int, *, credit_limit_cents: int | None = None) -> Account:
    """Open the customer's current account. Idempotent: returns the existing one."""
    def _op():
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise CustomerNotFound(customer_id)
        existing = account_for_customer(customer_id)
        if existing is not None:
            return existing
        account = Account(customer_id=customer_id, balance_cents=0, credit_limit_cents=credit_limit_cents)
        db.session.add(account)
        db.session.commit()
        return account

    return run_with_retry(_op)


# =============================================================================
# POSTING
# =============================================================================

def _post_locked(
    account: Account,
    entry: LedgerEntry,
    description: str | None,
    *,
    sale_id: int | None = None,
    note_id: int | None = None,
    user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
) -> AccountTransaction:
    if entry.amount_cents < 0:
        raise ValidationError("amount must be non-negative")

    new_balance = account.balance_cents + entry.signed_cents
    tx = AccountTransaction(
        account_id=account.id,
        entry_type=entry.tag,
        amount_cents=entry.amount_cents,
        balance_after_cents=new_balance,
        sale_id=sale_id,
        note_id=note_id,
        description=description,
        user_id=user_id,
        occurred_at=occurred_at or utcnow(),
    )
    account.balance_cents = new_balance
    db.session.add(tx)
    db.session.flush()
    return tx


def post(
    account_id: int,
    entry: LedgerEntry,
    description: str | None = None,
    *,
    sale_id: int | None = None,
    note_id: int | None = None,
    user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    commit: bool = True,
) -> AccountTransaction:
    """
    Append one transaction and update the stored balance incrementally.

    The account row is locked for the read -> add -> write of the balance.
    With commit=False the caller owns the transaction (invoice conversion,
    notes) and must commit or roll back.

    A back-dated occurred_at leaves later balance_after_cents snapshots
    stale; call recompute_balance afterwards.
    """
    def _locked():
        account = get_account(account_id, lock=True)
        return _post_locked(
            account, entry, description,
            sale_id=sale_id, note_id=note_id, user_id=user_id, occurred_at=occurred_at,
        )

    if not commit:
        return _locked()

    def _op():
        tx = _locked()
        db.session.commit()
        return tx

    return run_with_retry(_op)


# =============================================================================
# REPLAY
# =============================================================================

@dataclass(frozen=True)
class ReplayResult:
    account_id: int
    balance_cents: int
    previous_balance_cents: int
    transaction_count: int
    snapshots_rewritten: int

    @property
    def drift_cents(self) -> int:
        return self.previous_balance_cents - self.balance_cents


def list_transactions(account_id: int) -> list[AccountTransaction]:
    """Chronological history: occurred_at ascending, ties by insertion id."""
    return (
        db.session.query(AccountTransaction)
        .filter_by(account_id=account_id)
        .order_by(AccountTransaction.occurred_at.asc(), AccountTransaction.id.asc())
        .all()
    )


def replay(transactions) -> list[int]:
    """Fold transactions into running balances (one per transaction)."""
    balance = 0
    running = []
    for tx in transactions:
        balance += entry_for(tx).signed_cents
        running.append(balance)
    return running


def verify_balance(account_id: int) -> ReplayResult:
    """Compute the replay without writing anything."""
    account = get_account(account_id)
    transactions = list_transactions(account_id)
    running = replay(transactions)
    stale = sum(1 for tx, value in zip(transactions, running) if tx.balance_after_cents != value)
    return ReplayResult(
        account_id=account_id,
        balance_cents=running[-1] if running else 0,
        previous_balance_cents=account.balance_cents,
        transaction_count=len(transactions),
        snapshots_rewritten=stale,
    )


def recompute_balance(account_id: int) -> ReplayResult:
    """
    Rebuild the account balance and every balance_after snapshot from history.

    Canonical recovery path after suspected drift; running it twice yields
    the same balance and snapshots (the second run rewrites nothing).
    """
    def _op():
        account = get_account(account_id, lock=True)
        previous = account.balance_cents
        transactions = list_transactions(account_id)
        running = replay(transactions)

        rewritten = 0
        for tx, value in zip(transactions, running):
            if tx.balance_after_cents != value:
                tx.balance_after_cents = value
                rewritten += 1

        balance = running[-1] if running else 0
        if account.balance_cents != balance:
            account.balance_cents = balance
        db.session.commit()

        result = ReplayResult(
            account_id=account_id,
            balance_cents=balance,
            previous_balance_cents=previous,
            transaction_count=len(transactions),
            snapshots_rewritten=rewritten,
        )
        if result.drift_cents or rewritten:
            current_app.logger.warning(
                "Ledger drift repaired on account %s: stored=%s replayed=%s snapshots=%s",
                account_id, previous, balance, rewritten,
            )
        return result

    return run_with_retry(_op)


def account_statement(account_id: int) -> dict:
    """Statement rows with running balances plus the closing balance."""
    account = get_account(account_id)
    transactions = list_transactions(account_id)
    running = replay(transactions)
    return {
        "account": account.to_dict(),
        "customer": account.customer.to_dict() if account.customer else None,
        "rows": [
            dict(tx.to_dict(), running_balance_cents=value)
            for tx, value in zip(transactions, running)
        ],
        "closing_balance_cents": running[-1] if running else 0,
    }


def post_adjustment(account_id: int, entry_type: str, amount_cents: int, reason: str, *, user_id: int | None = None) -> tuple[AccountTransaction, Account]:
    """Manual ledger adjustment (administrative debit or credit)."""
    if not reason:
        raise ValidationError("reason required")
    if amount_cents <= 0:
        raise ValidationError("amount must be > 0")
    entry = make_entry(entry_type, amount_cents)
    tx = post(account_id, entry, reason, user_id=user_id)
    return tx, get_account(account_id)
