"""
Tests for account reports

- Debtor report: filters, ordering, totals kept separate per side
- Account statement: windowed running balance seeded from prior history,
  all-clients statement without running balance
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from cuentas.common.dates import business_today
from cuentas.common.exceptions import AuthorizationError, NotFoundError, ValidationError
from cuentas.modules.clients.schemas import ClientCreate, BalanceStatus
from cuentas.modules.clients.service import ClientService
from cuentas.modules.ledger.balance import BalanceService
from cuentas.modules.ledger.credit_policy import CreditPolicy
from cuentas.modules.ledger.service import LedgerService
from cuentas.modules.reports.schemas import DebtorFilter
from cuentas.modules.reports.service import AccountReportService


D = Decimal


@pytest.fixture
def clients(db_session):
    return ClientService(db_session)


@pytest.fixture
def ledger(db_session):
    return LedgerService(db_session)


@pytest.fixture
def reports(db_session, owner_id):
    return AccountReportService(db_session, owner_id)


def days_ago(n):
    return business_today() - timedelta(days=n)


class TestDebtorReport:

    @pytest.fixture
    def scenario(self, clients, ledger, owner_id):
        """Ana debe 500, Beto tiene 200 a favor, Carla saldada, Dario debe 900"""
        ana = clients.create_client(ClientCreate(name="Ana"), owner_id, owner_id)
        beto = clients.create_client(ClientCreate(name="Beto"), owner_id, owner_id)
        carla = clients.create_client(ClientCreate(name="Carla"), owner_id, owner_id)
        dario = clients.create_client(ClientCreate(name="Dario"), owner_id, owner_id)

        ledger.record_credit_sale(ana.id, owner_id, D("500"), owner_id, occurred_date=days_ago(10))
        ledger.record_payment(beto.id, owner_id, D("200"), owner_id, occurred_date=days_ago(3))
        ledger.record_credit_sale(carla.id, owner_id, D("50"), owner_id)
        ledger.record_payment(carla.id, owner_id, D("50"), owner_id)
        ledger.record_credit_sale(dario.id, owner_id, D("900"), owner_id)
        return {"ana": ana, "beto": beto, "carla": carla, "dario": dario}

    def test_rows_and_totals(self, reports, scenario):
        report = reports.debtor_report()

        assert [r.name for r in report.rows] == ["Dario", "Ana", "Beto"]
        assert [r.status for r in report.rows] == [BalanceStatus.OWES, BalanceStatus.OWES, BalanceStatus.IN_FAVOR]
        assert report.total_owed == D("1400")
        assert report.total_in_favor == D("200")
        assert report.net == D("1200")
        assert report.clients_owing == 2
        assert report.clients_in_favor == 1

    def test_days_since_last_movement(self, reports, scenario):
        rows = {r.name: r for r in reports.debtor_report().rows}

        assert rows["Ana"].last_movement_date == days_ago(10)
        assert rows["Ana"].days_since_last_movement == 10
        assert rows["Dario"].days_since_last_movement == 0

    def test_filters_keep_totals(self, reports, scenario):
        owes = reports.debtor_report(status_filter=DebtorFilter.OWES)
        assert [r.name for r in owes.rows] == ["Dario", "Ana"]
        assert owes.total_in_favor == D("200")

        in_favor = reports.debtor_report(status_filter=DebtorFilter.IN_FAVOR)
        assert [r.name for r in in_favor.rows] == ["Beto"]
        assert in_favor.rows[0].balance == D("-200")

    def test_inactive_clients_excluded(self, clients, reports, scenario, owner_id):
        clients.deactivate_client(scenario["dario"].id, owner_id, owner_id)

        report = reports.debtor_report()

        assert "Dario" not in [r.name for r in report.rows]
        assert report.total_owed == D("500")

    def test_other_owner_not_included(self, db_session, clients, ledger, scenario, other_owner_id):
        zoe = clients.create_client(ClientCreate(name="Zoe"), other_owner_id, other_owner_id)
        ledger.record_credit_sale(zoe.id, other_owner_id, D("10"), other_owner_id)

        report = AccountReportService(db_session, other_owner_id).debtor_report()
        assert [r.name for r in report.rows] == ["Zoe"]

    def test_ana_scenario(self, db_session, clients, ledger, reports, owner_id):
        ana = clients.create_client(ClientCreate(name="Ana", credit_limit=D("1000")), owner_id, owner_id)
        balances = BalanceService(db_session)

        ledger.record_credit_sale(ana.id, owner_id, D("300"), owner_id)
        assert balances.current_balance(ana.id, owner_id) == D("300")

        evaluation = CreditPolicy(db_session).evaluate(ana, D("800"))
        assert evaluation.exceeds_limit is True
        assert evaluation.new_balance == D("1100")
        assert evaluation.excess == D("100")

        ledger.record_credit_sale(ana.id, owner_id, D("800"), owner_id)
        assert balances.current_balance(ana.id, owner_id) == D("1100")

        ledger.record_payment(ana.id, owner_id, D("1100"), owner_id)
        assert balances.current_balance(ana.id, owner_id) == D("0")

        report = reports.debtor_report()
        assert report.rows == []
        assert report.net == D("0")


class TestAccountStatement:

    @pytest.fixture
    def ana(self, clients, ledger, owner_id):
        ana = clients.create_client(ClientCreate(name="Ana", last_name="Gómez"), owner_id, owner_id)
        ledger.record_credit_sale(ana.id, owner_id, D("1000"), owner_id, occurred_date=days_ago(30))
        ledger.record_payment(ana.id, owner_id, D("400"), owner_id, occurred_date=days_ago(20))
        ledger.record_credit_sale(ana.id, owner_id, D("250"), owner_id, occurred_date=days_ago(5))
        ledger.record_payment(ana.id, owner_id, D("100"), owner_id, occurred_date=days_ago(2))
        return ana

    def test_window_seeded_from_prior_history(self, db_session, reports, ana, owner_id):
        statement = reports.account_statement(client_id=ana.id, date_from=days_ago(10), date_to=business_today())

        assert statement.opening_balance == D("600")
        assert [r.balance_after for r in statement.rows] == [D("850"), D("750")]
        assert statement.rows[-1].balance_after == BalanceService(db_session).current_balance(ana.id, owner_id)
        assert statement.closing_balance == D("750")
        assert statement.client.name == "Ana"

    def test_window_columns_and_totals(self, reports, ana):
        statement = reports.account_statement(client_id=ana.id, date_from=days_ago(10))

        assert [r.debit for r in statement.rows] == [D("250"), D("0")]
        assert [r.credit for r in statement.rows] == [D("0"), D("100")]
        assert statement.totals.total_debit == D("250")
        assert statement.totals.total_credit == D("100")
        assert statement.totals.count_credit_sales == 1
        assert statement.totals.count_payments == 1
        assert statement.totals.net == D("150")

    def test_window_ending_in_the_past(self, reports, ana):
        statement = reports.account_statement(client_id=ana.id, date_to=days_ago(15))

        assert statement.opening_balance == D("0")
        assert [r.balance_after for r in statement.rows] == [D("1000"), D("600")]
        assert statement.closing_balance == D("600")

    def test_empty_window_keeps_balances(self, reports, ana):
        statement = reports.account_statement(client_id=ana.id, date_from=days_ago(15), date_to=days_ago(10))

        assert statement.rows == []
        assert statement.opening_balance == D("600")
        assert statement.closing_balance == D("600")

    def test_all_clients_without_running_balance(self, clients, ledger, reports, ana, owner_id):
        beto = clients.create_client(ClientCreate(name="Beto"), owner_id, owner_id)
        ledger.record_credit_sale(beto.id, owner_id, D("70"), owner_id, occurred_date=days_ago(5))

        statement = reports.account_statement(date_from=days_ago(10))

        assert statement.client is None
        assert statement.opening_balance is None
        assert len(statement.rows) == 3
        assert all(r.balance_after is None for r in statement.rows)
        assert {r.client_name for r in statement.rows} == {"Ana Gómez", "Beto"}
        assert statement.totals.total_debit == D("320")
        assert statement.totals.total_credit == D("100")

    def test_inverted_window_rejected(self, reports, ana):
        with pytest.raises(ValidationError):
            reports.account_statement(client_id=ana.id, date_from=days_ago(1), date_to=days_ago(5))

    def test_client_scoping(self, db_session, ana, other_owner_id, owner_id):
        with pytest.raises(AuthorizationError):
            AccountReportService(db_session, other_owner_id).account_statement(client_id=ana.id)
        with pytest.raises(NotFoundError):
            AccountReportService(db_session, owner_id).account_statement(client_id=uuid4())

    def test_voided_entry_shows_in_statement(self, ledger, reports, ana, owner_id):
        sale = ledger.record_credit_sale(ana.id, owner_id, D("500"), owner_id)
        ledger.void_entry(sale.id, owner_id, owner_id, reason="duplicado")

        statement = reports.account_statement(client_id=ana.id, date_from=business_today())

        assert [r.reverses_entry_id for r in statement.rows][-1] == sale.id
        assert statement.closing_balance == D("750")


class TestReportEndpoints:

    @pytest.fixture
    def client_id(self, api_client, auth_headers):
        client_id = api_client.post("/clients/", json={"name": "Ana"}, headers=auth_headers).json()["id"]
        api_client.post(f"/clients/{client_id}/credit-sales", json={"amount": "300"}, headers=auth_headers)
        api_client.post(f"/clients/{client_id}/payments", json={"amount": "50"}, headers=auth_headers)
        return client_id

    def test_debtors_endpoint(self, api_client, auth_headers, client_id):
        response = api_client.get("/reports/debtors?status=owes", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["rows"][0]["client_id"] == client_id
        assert D(str(data["total_owed"])) == D("250")

    def test_statement_endpoint(self, api_client, auth_headers, client_id):
        response = api_client.get(f"/reports/statement?client_id={client_id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [D(str(r["balance_after"])) for r in data["rows"]] == [D("300"), D("250")]
        assert D(str(data["closing_balance"])) == D("250")

    def test_statement_bad_window_returns_422(self, api_client, auth_headers, client_id):
        response = api_client.get(
            "/reports/statement?date_from=2024-05-10&date_to=2024-05-01", headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["field"] == "date_from"

    def test_reports_need_permission(self, api_client, client_id, employee_headers):
        response = api_client.get("/reports/debtors", headers=employee_headers("record_entries"))
        assert response.status_code == 403

        response = api_client.get("/reports/debtors", headers=employee_headers("view_reports"))
        assert response.status_code == 200
