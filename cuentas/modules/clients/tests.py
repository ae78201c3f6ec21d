"""
Tests para el módulo de Clientes

Cubren:
- Alta con validaciones (nombre, límite, unicidad sin distinguir mayúsculas)
- Saldo inicial en la misma transacción
- Edición y baja lógica
- Aislamiento entre dueños
- Endpoints REST y permisos de empleados
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, InvalidRequestError

from cuentas.common.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from cuentas.modules.clients.models import Client, normalize_name
from cuentas.modules.clients.schemas import ClientCreate, ClientUpdate, OpeningKind, BalanceStatus
from cuentas.modules.clients.service import ClientService
from cuentas.modules.ledger.balance import BalanceService
from cuentas.modules.ledger.models import LedgerEntry, EntryKind
from cuentas.modules.ledger.service import LedgerService


# ===== FIXTURES =====

@pytest.fixture
def service(db_session):
    return ClientService(db_session)


@pytest.fixture
def ana(service, owner_id):
    return service.create_client(
        ClientCreate(name="Ana", last_name="Gómez", phone="11-5555-0000", credit_limit=Decimal("1000")),
        owner_id,
        owner_id
    )


# ===== TESTS DE FUNCIONES AUXILIARES =====

class TestNormalizeName:

    def test_collapses_whitespace_and_case(self):
        assert normalize_name("  Ana   María ") == "ana maría"
        assert normalize_name("ANA") == normalize_name("ana")

    def test_none_is_empty(self):
        assert normalize_name(None) == ""


# ===== TESTS DE SERVICIO =====

class TestCreateClient:

    def test_create_basic_client(self, service, owner_id, db_session):
        client = service.create_client(ClientCreate(name="  Juan  "), owner_id, owner_id)

        assert client.id is not None
        assert client.name == "Juan"
        assert client.owner_id == owner_id
        assert client.active is True
        assert client.credit_limit is None
        assert client.has_credit_limit is False
        assert db_session.query(LedgerEntry).count() == 0

    def test_blank_name_rejected(self, service, owner_id):
        with pytest.raises(ValidationError) as exc_info:
            service.create_client(ClientCreate(name="   "), owner_id, owner_id)
        assert exc_info.value.field == "name"

    def test_negative_limit_rejected(self, service, owner_id):
        with pytest.raises(ValidationError) as exc_info:
            service.create_client(ClientCreate(name="Juan", credit_limit=Decimal("-1")), owner_id, owner_id)
        assert exc_info.value.field == "credit_limit"

    def test_zero_limit_is_a_real_limit(self, service, owner_id):
        client = service.create_client(ClientCreate(name="Juan", credit_limit=Decimal("0")), owner_id, owner_id)
        assert client.credit_limit == Decimal("0")
        assert client.has_credit_limit is True

    def test_duplicate_name_case_insensitive(self, service, owner_id, ana):
        with pytest.raises(ConflictError):
            service.create_client(ClientCreate(name="  ANA "), owner_id, owner_id)

    def test_duplicate_name_includes_inactive_clients(self, service, owner_id, ana):
        service.deactivate_client(ana.id, owner_id, owner_id)
        with pytest.raises(ConflictError):
            service.create_client(ClientCreate(name="ana"), owner_id, owner_id)

    def test_same_name_allowed_for_other_owner(self, service, owner_id, other_owner_id, ana):
        other = service.create_client(ClientCreate(name="Ana"), other_owner_id, other_owner_id)
        assert other.owner_id == other_owner_id


class TestOpeningBalance:

    def test_opening_debt_creates_single_credit_sale(self, service, owner_id, db_session):
        client = service.create_client(
            ClientCreate(name="Pedro", opening_balance=Decimal("500"), opening_kind=OpeningKind.DEBT),
            owner_id,
            owner_id
        )

        entries = db_session.query(LedgerEntry).filter(LedgerEntry.client_id == client.id).all()
        assert len(entries) == 1
        assert entries[0].kind == EntryKind.CREDIT_SALE
        assert entries[0].amount == Decimal("500.00")
        assert BalanceService(db_session).current_balance(client.id, owner_id) == Decimal("500.00")

    def test_opening_credit_leaves_balance_in_favor(self, service, owner_id, db_session):
        client = service.create_client(
            ClientCreate(name="Pedro", opening_balance=Decimal("250"), opening_kind=OpeningKind.CREDIT),
            owner_id,
            owner_id
        )
        assert BalanceService(db_session).current_balance(client.id, owner_id) == Decimal("-250.00")

    def test_opening_balance_requires_kind(self, service, owner_id, db_session):
        with pytest.raises(ValidationError) as exc_info:
            service.create_client(ClientCreate(name="Pedro", opening_balance=Decimal("100")), owner_id, owner_id)

        assert exc_info.value.field == "opening_kind"
        assert db_session.query(Client).count() == 0

    def test_failed_opening_entry_leaves_no_client(self, service, owner_id, db_session, monkeypatch):
        # occurred_time es NOT NULL: el insert del movimiento falla después del cliente
        monkeypatch.setattr("cuentas.modules.clients.service.business_time", lambda: None)

        with pytest.raises(IntegrityError):
            service.create_client(
                ClientCreate(name="Pedro", opening_balance=Decimal("500"), opening_kind=OpeningKind.DEBT),
                owner_id,
                owner_id
            )

        assert db_session.query(Client).count() == 0
        assert db_session.query(LedgerEntry).count() == 0

    def test_zero_opening_balance_creates_no_entry(self, service, owner_id, db_session):
        service.create_client(ClientCreate(name="Pedro", opening_balance=Decimal("0")), owner_id, owner_id)
        assert db_session.query(LedgerEntry).count() == 0

    def test_negative_opening_balance_rejected(self, service, owner_id):
        with pytest.raises(ValidationError):
            service.create_client(
                ClientCreate(name="Pedro", opening_balance=Decimal("-10"), opening_kind=OpeningKind.DEBT),
                owner_id,
                owner_id
            )


class TestGetClient:

    def test_get_own_client(self, service, owner_id, ana):
        assert service.get_client(ana.id, owner_id).id == ana.id

    def test_missing_client_is_not_found(self, service, owner_id):
        with pytest.raises(NotFoundError):
            service.get_client(uuid4(), owner_id)

    def test_client_of_other_owner_is_forbidden(self, service, other_owner_id, ana):
        with pytest.raises(AuthorizationError):
            service.get_client(ana.id, other_owner_id)

    def test_list_active_clients_ordered_by_name(self, service, owner_id, other_owner_id):
        for name in ["carlos", "Beto", "alicia"]:
            service.create_client(ClientCreate(name=name), owner_id, owner_id)
        service.create_client(ClientCreate(name="Zoe"), other_owner_id, other_owner_id)
        dropped = service.create_client(ClientCreate(name="Dario"), owner_id, owner_id)
        service.deactivate_client(dropped.id, owner_id, owner_id)

        names = [c.name for c in service.list_active_clients(owner_id)]
        assert names == ["alicia", "Beto", "carlos"]

    def test_list_clients_with_balance(self, service, owner_id, ana, db_session):
        other = service.create_client(ClientCreate(name="Beto"), owner_id, owner_id)
        LedgerService(db_session).record_credit_sale(ana.id, owner_id, Decimal("300"), owner_id)

        result = {c.id: c for c in service.list_clients_with_balance(owner_id)}
        assert result[ana.id].balance == Decimal("300.00")
        assert result[ana.id].status == BalanceStatus.OWES
        assert result[other.id].balance == Decimal("0")
        assert result[other.id].status == BalanceStatus.SETTLED


class TestUpdateAndDeactivate:

    def test_update_attributes(self, service, owner_id, ana):
        updated = service.update_client(
            ana.id,
            ClientUpdate(name="ana", last_name="Gómez", credit_limit=Decimal("2000"), note="paga los viernes"),
            owner_id,
            owner_id
        )
        assert updated.name == "ana"
        assert updated.credit_limit == Decimal("2000.00")
        assert updated.note == "paga los viernes"
        assert updated.phone is None

    def test_update_to_existing_name_conflicts(self, service, owner_id, ana):
        beto = service.create_client(ClientCreate(name="Beto"), owner_id, owner_id)
        with pytest.raises(ConflictError):
            service.update_client(beto.id, ClientUpdate(name="ANA"), owner_id, owner_id)

    def test_update_does_not_touch_entries(self, service, owner_id, ana, db_session):
        LedgerService(db_session).record_credit_sale(ana.id, owner_id, Decimal("900"), owner_id)
        service.update_client(ana.id, ClientUpdate(name="Ana", credit_limit=Decimal("100")), owner_id, owner_id)

        assert BalanceService(db_session).current_balance(ana.id, owner_id) == Decimal("900.00")

    def test_deactivate_keeps_balance_and_history(self, service, owner_id, ana, db_session):
        LedgerService(db_session).record_credit_sale(ana.id, owner_id, Decimal("300"), owner_id)

        client = service.deactivate_client(ana.id, owner_id, owner_id)

        assert client.active is False
        assert client.deactivated_at is not None
        assert service.get_client(ana.id, owner_id).active is False
        assert BalanceService(db_session).current_balance(ana.id, owner_id) == Decimal("300.00")

    def test_entries_never_lazy_loaded(self, service, owner_id, ana):
        client = service.get_client(ana.id, owner_id)
        with pytest.raises(InvalidRequestError):
            client.entries

    def test_deactivate_twice_conflicts(self, service, owner_id, ana):
        service.deactivate_client(ana.id, owner_id, owner_id)
        with pytest.raises(ConflictError):
            service.deactivate_client(ana.id, owner_id, owner_id)

    def test_deactivate_other_owner_forbidden(self, service, other_owner_id, ana):
        with pytest.raises(AuthorizationError):
            service.deactivate_client(ana.id, other_owner_id, other_owner_id)


# ===== TESTS DE ENDPOINTS =====

class TestClientEndpoints:

    def test_create_client_endpoint(self, api_client, auth_headers, owner_id):
        response = api_client.post(
            "/clients/",
            json={"name": "Ana", "credit_limit": "1000", "opening_balance": "200", "opening_kind": "debt"},
            headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Ana"
        assert data["owner_id"] == str(owner_id)
        assert Decimal(str(data["credit_limit"])) == Decimal("1000")

        detail = api_client.get(f"/clients/{data['id']}", headers=auth_headers)
        assert detail.status_code == 200
        assert Decimal(str(detail.json()["balance"])) == Decimal("200")
        assert detail.json()["status"] == "owes"

    def test_duplicate_returns_409(self, api_client, auth_headers):
        api_client.post("/clients/", json={"name": "Ana"}, headers=auth_headers)
        response = api_client.post("/clients/", json={"name": "ana"}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_NAME"

    def test_blank_name_returns_422_with_field(self, api_client, auth_headers):
        response = api_client.post("/clients/", json={"name": "  "}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["field"] == "name"

    def test_missing_token_returns_401(self, api_client):
        response = api_client.get("/clients/")
        assert response.status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        response = api_client.get("/clients/", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_list_with_balance(self, api_client, auth_headers):
        created = api_client.post("/clients/", json={"name": "Ana"}, headers=auth_headers).json()
        api_client.post(f"/clients/{created['id']}/credit-sales", json={"amount": "150.50"}, headers=auth_headers)

        response = api_client.get("/clients/?with_balance=true", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert Decimal(str(data["items"][0]["balance"])) == Decimal("150.50")

    def test_update_and_deactivate(self, api_client, auth_headers):
        created = api_client.post("/clients/", json={"name": "Ana"}, headers=auth_headers).json()

        updated = api_client.put(
            f"/clients/{created['id']}",
            json={"name": "Ana María", "phone": "555"},
            headers=auth_headers
        )
        assert updated.status_code == 200
        assert updated.json()["name"] == "Ana María"

        deleted = api_client.delete(f"/clients/{created['id']}", headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.json()["active"] is False

        listed = api_client.get("/clients/", headers=auth_headers).json()
        assert listed["total"] == 0

    def test_other_owner_gets_403(self, api_client, auth_headers, headers_for, other_owner_id):
        created = api_client.post("/clients/", json={"name": "Ana"}, headers=auth_headers).json()
        response = api_client.get(
            f"/clients/{created['id']}",
            headers=headers_for(other_owner_id, other_owner_id)
        )
        assert response.status_code == 403

    def test_unknown_client_gets_404(self, api_client, auth_headers):
        response = api_client.get(f"/clients/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404

    def test_employee_needs_manage_permission(self, api_client, employee_headers):
        response = api_client.post("/clients/", json={"name": "Ana"}, headers=employee_headers())
        assert response.status_code == 403
        assert response.json()["error_code"] == "PERMISSION_REQUIRED"

        response = api_client.post(
            "/clients/", json={"name": "Ana"}, headers=employee_headers("manage_clients")
        )
        assert response.status_code == 201

    def test_employee_needs_deactivate_permission(self, api_client, auth_headers, employee_headers):
        created = api_client.post("/clients/", json={"name": "Ana"}, headers=auth_headers).json()

        response = api_client.delete(f"/clients/{created['id']}", headers=employee_headers("manage_clients"))
        assert response.status_code == 403

        response = api_client.delete(f"/clients/{created['id']}", headers=employee_headers("deactivate_clients"))
        assert response.status_code == 200
