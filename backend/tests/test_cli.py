from backoffice.models import Account
from backoffice.services import ledger_service
from backoffice.services.ledger_service import Credit, Debit


def _drift(db_session, account_id, balance_cents):
    account = db_session.get(Account, account_id)
    account.balance_cents = balance_cents
    db_session.commit()


def test_verify_passes_on_consistent_ledger(app, db_session, make_customer):
    customer = make_customer("Clean")
    account = ledger_service.account_for_customer(customer.id)
    ledger_service.post(account.id, Debit(1000))

    result = app.test_cli_runner().invoke(args=["ledger", "verify"])

    assert result.exit_code == 0
    assert "PASS 1 account(s) verified" in result.output


def test_verify_reports_drift_without_fixing(app, db_session, make_customer):
    customer = make_customer("Drifted")
    account = ledger_service.account_for_customer(customer.id)
    ledger_service.post(account.id, Debit(1000))
    _drift(db_session, account.id, 5)

    result = app.test_cli_runner().invoke(args=["ledger", "verify", "--account-id", str(account.id)])

    assert result.exit_code == 1
    assert f"DRIFT account {account.id}" in result.output
    db_session.expire_all()
    assert db_session.get(Account, account.id).balance_cents == 5


def test_recompute_all_repairs(app, db_session, make_customer):
    first = ledger_service.account_for_customer(make_customer("One").id)
    second = ledger_service.account_for_customer(make_customer("Two").id)
    ledger_service.post(first.id, Debit(300))
    ledger_service.post(second.id, Credit(200))
    _drift(db_session, second.id, 0)

    result = app.test_cli_runner().invoke(args=["ledger", "recompute", "--all"])

    assert result.exit_code == 0
    assert "1 repaired" in result.output
    db_session.expire_all()
    assert db_session.get(Account, second.id).balance_cents == -200
    assert db_session.get(Account, first.id).balance_cents == 300


def test_recompute_requires_a_target(app, db_session):
    result = app.test_cli_runner().invoke(args=["ledger", "recompute"])
    assert result.exit_code != 0
    assert "--account-id" in result.output
