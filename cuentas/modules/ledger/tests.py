"""
Tests para el ledger de cuenta corriente

Cubren:
- Cálculo de saldo (independiente del orden) y saldo acumulado cronológico
- Desempate por orden de inserción en la misma fecha y hora
- Registro de fiados y pagos con validaciones
- Política de crédito (sólo advertencia)
- Anulación por movimiento compensatorio
- Movimientos del día y endpoints REST
"""

import pytest
from datetime import date, time, timedelta
from decimal import Decimal
from uuid import uuid4

from cuentas.common.dates import business_today
from cuentas.common.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from cuentas.modules.clients.schemas import ClientCreate
from cuentas.modules.clients.service import ClientService
from cuentas.modules.ledger.balance import (
    BalanceService, chronological, compute_balance, replay
)
from cuentas.modules.ledger.credit_policy import CreditPolicy, evaluate_credit
from cuentas.modules.ledger.models import LedgerEntry, EntryKind
from cuentas.modules.ledger.service import LedgerService


D = Decimal


def make_entry(entry_id, kind, amount, occurred_time, occurred_date=date(2024, 3, 1), client_id=None):
    return LedgerEntry(
        id=entry_id,
        owner_id=uuid4(),
        client_id=client_id or uuid4(),
        kind=kind,
        amount=D(amount),
        occurred_date=occurred_date,
        occurred_time=occurred_time,
        created_by=uuid4()
    )


# ===== FIXTURES =====

@pytest.fixture
def ledger(db_session):
    return LedgerService(db_session)


@pytest.fixture
def balances(db_session):
    return BalanceService(db_session)


@pytest.fixture
def client(db_session, owner_id):
    return ClientService(db_session).create_client(
        ClientCreate(name="Ana", credit_limit=D("1000")), owner_id, owner_id
    )


# ===== TESTS DEL MOTOR DE SALDOS (funciones puras) =====

class TestBalanceFold:

    def test_balance_is_sales_minus_payments(self):
        entries = [
            make_entry(1, EntryKind.CREDIT_SALE, "300", time(9, 0)),
            make_entry(2, EntryKind.PAYMENT, "120.50", time(10, 0)),
            make_entry(3, EntryKind.CREDIT_SALE, "20.25", time(11, 0)),
        ]
        assert compute_balance(entries) == D("199.75")
        assert compute_balance(list(reversed(entries))) == D("199.75")

    def test_empty_history_is_zero(self):
        assert compute_balance([]) == D("0")
        assert replay([]) == []

    def test_same_timestamp_ties_break_by_insertion(self):
        entries = [
            make_entry(1, EntryKind.CREDIT_SALE, "100", time(10, 0)),
            make_entry(2, EntryKind.CREDIT_SALE, "50", time(9, 0)),
            make_entry(3, EntryKind.CREDIT_SALE, "20", time(9, 0)),
        ]

        rows = replay(entries)

        assert [r.entry.amount for r in rows] == [D("50"), D("20"), D("100")]
        assert [r.balance_after for r in rows] == [D("50"), D("70"), D("170")]

    def test_last_running_balance_equals_current_balance(self):
        entries = [
            make_entry(5, EntryKind.PAYMENT, "400", time(8, 0), date(2024, 3, 2)),
            make_entry(1, EntryKind.CREDIT_SALE, "300", time(18, 0), date(2024, 3, 1)),
            make_entry(3, EntryKind.CREDIT_SALE, "75", time(8, 0), date(2024, 3, 2)),
        ]

        rows = replay(entries)

        assert [r.entry.id for r in rows] == [1, 3, 5]
        assert rows[-1].balance_after == compute_balance(entries) == D("-25")

    def test_date_orders_before_time(self):
        entries = [
            make_entry(1, EntryKind.CREDIT_SALE, "10", time(8, 0), date(2024, 3, 2)),
            make_entry(2, EntryKind.CREDIT_SALE, "10", time(23, 0), date(2024, 3, 1)),
        ]
        assert [e.id for e in chronological(entries)] == [2, 1]


# ===== TESTS DE POLÍTICA DE CRÉDITO =====

class TestCreditPolicy:

    def test_exceeding_limit(self):
        evaluation = evaluate_credit(D("0"), D("1000"), D("1200"))
        assert evaluation.exceeds_limit is True
        assert evaluation.excess == D("200")
        assert evaluation.new_balance == D("1200")

    def test_exact_limit_is_not_exceeded(self):
        evaluation = evaluate_credit(D("400"), D("1000"), D("600"))
        assert evaluation.exceeds_limit is False
        assert evaluation.excess == D("0")

    def test_no_limit_never_exceeds(self):
        evaluation = evaluate_credit(D("5000"), None, D("100000"))
        assert evaluation.exceeds_limit is False
        assert evaluation.excess == D("0")
        assert evaluation.credit_limit is None

    def test_balance_in_favor_offsets_sale(self):
        evaluation = evaluate_credit(D("-300"), D("1000"), D("1200"))
        assert evaluation.new_balance == D("900")
        assert evaluation.exceeds_limit is False

    def test_evaluation_does_not_block_sale(self, db_session, ledger, balances, client, owner_id):
        evaluation = CreditPolicy(db_session).evaluate(client, D("1200"))
        assert evaluation.exceeds_limit is True
        assert evaluation.excess == D("200")

        ledger.record_credit_sale(client.id, owner_id, D("1200"), owner_id)
        assert balances.current_balance(client.id, owner_id) == D("1200")

    def test_non_positive_proposal_rejected(self, db_session, client):
        with pytest.raises(ValidationError):
            CreditPolicy(db_session).evaluate(client, D("0"))

    def test_sub_cent_proposal_rejected_like_a_sale(self, db_session, ledger, client, owner_id):
        ledger.record_credit_sale(client.id, owner_id, D("1000"), owner_id)

        with pytest.raises(ValidationError) as exc_info:
            CreditPolicy(db_session).evaluate(client, D("0.004"))
        assert exc_info.value.field == "amount"

        with pytest.raises(ValidationError):
            ledger.record_credit_sale(client.id, owner_id, D("0.004"), owner_id)

    def test_proposal_rounded_to_cents(self, db_session, ledger, client, owner_id):
        ledger.record_credit_sale(client.id, owner_id, D("1000"), owner_id)

        evaluation = CreditPolicy(db_session).evaluate(client, D("0.005"))

        assert evaluation.new_balance == D("1000.01")
        assert evaluation.excess == D("0.01")


# ===== TESTS DEL SERVICIO DE LEDGER =====

class TestRecordEntries:

    def test_record_credit_sale(self, ledger, balances, client, owner_id, employee_id):
        entry = ledger.record_credit_sale(client.id, owner_id, D("300"), employee_id, description=" yerba y azúcar ")

        assert entry.id is not None
        assert entry.kind == EntryKind.CREDIT_SALE
        assert entry.amount == D("300.00")
        assert entry.description == "yerba y azúcar"
        assert entry.payment_method is None
        assert entry.created_by == employee_id
        assert entry.occurred_date == business_today()
        assert balances.current_balance(client.id, owner_id) == D("300")

    def test_overpayment_leaves_balance_in_favor(self, ledger, balances, client, owner_id):
        ledger.record_credit_sale(client.id, owner_id, D("100"), owner_id)
        payment = ledger.record_payment(client.id, owner_id, D("150"), owner_id, payment_method="efectivo")

        assert payment.payment_method == "efectivo"
        assert payment.description is None
        assert balances.current_balance(client.id, owner_id) == D("-50")

    @pytest.mark.parametrize("amount", [D("0"), D("-10"), D("0.001"), "abc", None])
    def test_invalid_amounts_rejected(self, ledger, client, owner_id, amount):
        with pytest.raises(ValidationError) as exc_info:
            ledger.record_credit_sale(client.id, owner_id, amount, owner_id)
        assert exc_info.value.field == "amount"

    def test_inactive_client_rejected(self, db_session, ledger, client, owner_id):
        ClientService(db_session).deactivate_client(client.id, owner_id, owner_id)

        with pytest.raises(ValidationError) as exc_info:
            ledger.record_payment(client.id, owner_id, D("10"), owner_id)
        assert exc_info.value.error_code == "CLIENT_INACTIVE"

    def test_unknown_client_not_found(self, ledger, owner_id, db_session):
        with pytest.raises(NotFoundError):
            ledger.record_credit_sale(uuid4(), owner_id, D("10"), owner_id)
        assert db_session.query(LedgerEntry).count() == 0

    def test_other_owner_client_forbidden(self, ledger, client, other_owner_id, db_session):
        with pytest.raises(AuthorizationError):
            ledger.record_credit_sale(client.id, other_owner_id, D("10"), other_owner_id)
        assert db_session.query(LedgerEntry).count() == 0

    def test_backdated_entry_orders_before_today(self, ledger, balances, client, owner_id):
        ledger.record_credit_sale(client.id, owner_id, D("100"), owner_id)
        yesterday = business_today() - timedelta(days=1)
        backdated = ledger.record_payment(client.id, owner_id, D("40"), owner_id, occurred_date=yesterday)

        rows = balances.running_balance(client.id, owner_id)

        assert rows[0].entry.id == backdated.id
        assert [r.balance_after for r in rows] == [D("-40"), D("60")]

    def test_persisted_ties_use_insertion_order(self, db_session, balances, client, owner_id):
        same_day = date(2024, 5, 10)
        for amount, at in [("100", time(10, 0)), ("50", time(9, 0)), ("20", time(9, 0))]:
            db_session.add(LedgerEntry(
                owner_id=owner_id,
                client_id=client.id,
                kind=EntryKind.CREDIT_SALE,
                amount=D(amount),
                occurred_date=same_day,
                occurred_time=at,
                created_by=owner_id
            ))
            db_session.commit()

        rows = balances.running_balance(client.id, owner_id)

        assert [r.entry.amount for r in rows] == [D("50"), D("20"), D("100")]
        assert [r.balance_after for r in rows] == [D("50"), D("70"), D("170")]
        assert rows[-1].balance_after == balances.current_balance(client.id, owner_id)

    def test_balances_by_client(self, db_session, ledger, balances, client, owner_id):
        beto = ClientService(db_session).create_client(ClientCreate(name="Beto"), owner_id, owner_id)
        ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)
        ledger.record_payment(beto.id, owner_id, D("80"), owner_id)

        result = balances.balances_by_client(owner_id)

        assert result == {client.id: D("300"), beto.id: D("-80")}
        assert balances.balances_by_client(owner_id, []) == {}

    def test_balance_of_unknown_client_not_found(self, balances, owner_id):
        with pytest.raises(NotFoundError):
            balances.current_balance(uuid4(), owner_id)
        with pytest.raises(NotFoundError):
            balances.running_balance(uuid4(), owner_id)
        with pytest.raises(NotFoundError):
            balances.history(uuid4(), owner_id)

    def test_balance_of_other_owner_client_forbidden(self, ledger, balances, client, owner_id, other_owner_id):
        ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)

        with pytest.raises(AuthorizationError):
            balances.current_balance(client.id, other_owner_id)
        with pytest.raises(AuthorizationError):
            balances.running_balance(client.id, other_owner_id)
        with pytest.raises(AuthorizationError):
            balances.history(client.id, other_owner_id)


class TestVoidEntry:

    def test_void_appends_opposite_entry(self, ledger, balances, client, owner_id, employee_id):
        sale = ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)

        reversal = ledger.void_entry(sale.id, owner_id, employee_id, reason="error de carga")

        assert reversal.kind == EntryKind.PAYMENT
        assert reversal.amount == sale.amount
        assert reversal.reverses_entry_id == sale.id
        assert reversal.is_reversal is True
        assert reversal.description_or_method == "Anulación: error de carga"
        assert reversal.created_by == employee_id
        assert balances.current_balance(client.id, owner_id) == D("0")
        assert len(balances.history(client.id, owner_id)) == 2

    def test_void_payment(self, ledger, balances, client, owner_id):
        ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)
        payment = ledger.record_payment(client.id, owner_id, D("100"), owner_id)

        reversal = ledger.void_entry(payment.id, owner_id, owner_id)

        assert reversal.kind == EntryKind.CREDIT_SALE
        assert reversal.description_or_method == "Anulación"
        assert balances.current_balance(client.id, owner_id) == D("300")

    def test_void_twice_conflicts(self, ledger, client, owner_id):
        sale = ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)
        ledger.void_entry(sale.id, owner_id, owner_id)

        with pytest.raises(ConflictError) as exc_info:
            ledger.void_entry(sale.id, owner_id, owner_id)
        assert exc_info.value.error_code == "ENTRY_ALREADY_VOIDED"

    def test_reversal_cannot_be_voided(self, ledger, client, owner_id):
        sale = ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)
        reversal = ledger.void_entry(sale.id, owner_id, owner_id)

        with pytest.raises(ConflictError) as exc_info:
            ledger.void_entry(reversal.id, owner_id, owner_id)
        assert exc_info.value.error_code == "ENTRY_IS_REVERSAL"

    def test_void_allowed_for_inactive_client(self, db_session, ledger, balances, client, owner_id):
        sale = ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)
        ClientService(db_session).deactivate_client(client.id, owner_id, owner_id)

        ledger.void_entry(sale.id, owner_id, owner_id)
        assert balances.current_balance(client.id, owner_id) == D("0")

    def test_void_scoping(self, ledger, client, owner_id, other_owner_id):
        sale = ledger.record_credit_sale(client.id, owner_id, D("300"), owner_id)

        with pytest.raises(AuthorizationError):
            ledger.void_entry(sale.id, other_owner_id, other_owner_id)
        with pytest.raises(NotFoundError):
            ledger.void_entry(sale.id + 1000, owner_id, owner_id)


class TestEntriesForDate:

    def test_entries_of_the_day(self, db_session, ledger, client, owner_id, other_owner_id):
        beto = ClientService(db_session).create_client(ClientCreate(name="Beto"), owner_id, owner_id)
        first = ledger.record_credit_sale(client.id, owner_id, D("100"), owner_id)
        second = ledger.record_payment(beto.id, owner_id, D("30"), owner_id)
        ledger.record_credit_sale(
            client.id, owner_id, D("999"), owner_id, occurred_date=business_today() - timedelta(days=3)
        )
        outsider = ClientService(db_session).create_client(ClientCreate(name="Zoe"), other_owner_id, other_owner_id)
        ledger.record_credit_sale(outsider.id, other_owner_id, D("5"), other_owner_id)

        rows = ledger.entries_for_date(owner_id, business_today())

        assert [entry.id for entry, _ in rows] == [second.id, first.id]
        assert [c.name for _, c in rows] == ["Beto", "Ana"]

        only_sales = ledger.entries_for_date(owner_id, business_today(), EntryKind.CREDIT_SALE)
        assert [entry.id for entry, _ in only_sales] == [first.id]


# ===== TESTS DE ENDPOINTS =====

class TestLedgerEndpoints:

    @pytest.fixture
    def client_id(self, api_client, auth_headers):
        response = api_client.post("/clients/", json={"name": "Ana", "credit_limit": "1000"}, headers=auth_headers)
        return response.json()["id"]

    def test_sale_payment_and_balance(self, api_client, auth_headers, client_id):
        sale = api_client.post(
            f"/clients/{client_id}/credit-sales",
            json={"amount": "300", "description": "almacén"},
            headers=auth_headers
        )
        assert sale.status_code == 201
        assert sale.json()["kind"] == "credit_sale"
        assert sale.json()["description"] == "almacén"

        payment = api_client.post(
            f"/clients/{client_id}/payments",
            json={"amount": "100", "payment_method": "transferencia"},
            headers=auth_headers
        )
        assert payment.status_code == 201
        assert payment.json()["payment_method"] == "transferencia"

        balance = api_client.get(f"/clients/{client_id}/balance", headers=auth_headers)
        assert balance.status_code == 200
        assert D(str(balance.json()["balance"])) == D("200")
        assert balance.json()["status"] == "owes"

    def test_history_endpoint(self, api_client, auth_headers, client_id):
        for amount in ["100", "50"]:
            api_client.post(f"/clients/{client_id}/credit-sales", json={"amount": amount}, headers=auth_headers)

        response = api_client.get(f"/clients/{client_id}/history", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [D(str(r["balance_after"])) for r in data["rows"]] == [D("100"), D("150")]
        assert D(str(data["balance"])) == D("150")

    def test_credit_check_is_advisory(self, api_client, auth_headers, client_id):
        check = api_client.post(f"/clients/{client_id}/credit-check", json={"amount": "1200"}, headers=auth_headers)
        assert check.status_code == 200
        assert check.json()["exceeds_limit"] is True
        assert D(str(check.json()["excess"])) == D("200")

        sale = api_client.post(f"/clients/{client_id}/credit-sales", json={"amount": "1200"}, headers=auth_headers)
        assert sale.status_code == 201

    def test_zero_amount_returns_422(self, api_client, auth_headers, client_id):
        response = api_client.post(f"/clients/{client_id}/payments", json={"amount": "0"}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["field"] == "amount"

    def test_void_endpoint(self, api_client, auth_headers, client_id):
        sale = api_client.post(f"/clients/{client_id}/credit-sales", json={"amount": "300"}, headers=auth_headers).json()

        voided = api_client.post(f"/ledger/entries/{sale['id']}/void", json={"reason": "duplicado"}, headers=auth_headers)
        assert voided.status_code == 201
        assert voided.json()["kind"] == "payment"
        assert voided.json()["reverses_entry_id"] == sale["id"]

        again = api_client.post(f"/ledger/entries/{sale['id']}/void", headers=auth_headers)
        assert again.status_code == 409

    def test_entries_of_day_endpoint(self, api_client, auth_headers, client_id):
        api_client.post(f"/clients/{client_id}/credit-sales", json={"amount": "300"}, headers=auth_headers)
        api_client.post(f"/clients/{client_id}/payments", json={"amount": "100"}, headers=auth_headers)

        response = api_client.get(
            f"/ledger/entries?date={business_today().isoformat()}&kind=payment",
            headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 1
        assert data["items"][0]["client_name"] == "Ana"
        assert D(str(data["total_payments"])) == D("100")
        assert D(str(data["total_credit_sales"])) == D("0")

    def test_employee_permissions(self, api_client, client_id, employee_headers):
        response = api_client.post(
            f"/clients/{client_id}/credit-sales", json={"amount": "10"}, headers=employee_headers("view_reports")
        )
        assert response.status_code == 403

        sale = api_client.post(
            f"/clients/{client_id}/credit-sales", json={"amount": "10"}, headers=employee_headers("record_entries")
        )
        assert sale.status_code == 201

        void = api_client.post(
            f"/ledger/entries/{sale.json()['id']}/void", headers=employee_headers("record_entries")
        )
        assert void.status_code == 403
