"""
Servicios de negocio para el módulo de Clientes

Implementa:
- Alta de clientes con saldo inicial opcional (en la misma transacción)
- Edición de datos y límite de crédito
- Baja lógica (el historial se conserva)
- Listados con saldo derivado del ledger

Todas las operaciones están acotadas al dueño (owner_id). Un cliente de
otro dueño produce AuthorizationError, nunca sus datos.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cuentas.common.dates import business_today, business_time
from cuentas.common.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from cuentas.common.money import optional_limit, to_money
from cuentas.modules.clients.models import Client, normalize_name
from cuentas.modules.clients.schemas import (
    BalanceStatus, ClientCreate, ClientUpdate, ClientWithBalance, ClientOut, OpeningKind
)
from cuentas.modules.ledger.balance import BalanceService, ZERO
from cuentas.modules.ledger.models import LedgerEntry, EntryKind

logger = logging.getLogger(__name__)

OPENING_BALANCE_DESCRIPTION = "Saldo inicial"


class ClientService:
    """Servicio principal para gestión de clientes"""

    def __init__(self, db: Session):
        self.db = db

    # ===== Validaciones =====

    def _validate_name(self, name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("El nombre del cliente es obligatorio", field="name")
        return name

    def _ensure_unique_name(self, owner_id: UUID, name_key: str, exclude_id: Optional[UUID] = None):
        query = self.db.query(Client.id).filter(
            Client.owner_id == owner_id,
            Client.name_key == name_key
        )
        if exclude_id is not None:
            query = query.filter(Client.id != exclude_id)

        if query.first():
            raise ConflictError("Ya existe un cliente con ese nombre", field="name", error_code="DUPLICATE_NAME")

    def _handle_integrity_error(self, e: IntegrityError):
        # Carrera entre dos altas con el mismo nombre: la restricción única decide
        message = str(e.orig) if e.orig is not None else str(e)
        if "uq_clients_owner_name_key" in message or "clients.name_key" in message:
            raise ConflictError("Ya existe un cliente con ese nombre", field="name", error_code="DUPLICATE_NAME")
        raise e

    # ===== Consultas =====

    def get_client(self, client_id: UUID, owner_id: UUID) -> Client:
        """
        Obtener un cliente del dueño (activo o dado de baja).

        Raises:
            NotFoundError: el cliente no existe
            AuthorizationError: el cliente pertenece a otro dueño
        """
        client = self.db.query(Client).filter(Client.id == client_id).first()

        if not client:
            raise NotFoundError("Cliente no encontrado", field="client_id")

        if client.owner_id != owner_id:
            logger.warning(f"Owner {owner_id} attempted to access client {client_id} of another owner")
            raise AuthorizationError("No tienes acceso a este cliente", field="client_id")

        return client

    def list_active_clients(self, owner_id: UUID) -> List[Client]:
        """Clientes activos del dueño, ordenados por nombre"""
        return self.db.query(Client).filter(
            Client.owner_id == owner_id,
            Client.active.is_(True)
        ).order_by(Client.name_key, Client.id).all()

    def get_client_with_balance(self, client_id: UUID, owner_id: UUID) -> ClientWithBalance:
        client = self.get_client(client_id, owner_id)
        balance = BalanceService(self.db).current_balance(client.id, owner_id)
        return self._with_balance(client, balance)

    def list_clients_with_balance(self, owner_id: UUID) -> List[ClientWithBalance]:
        """Clientes activos con su saldo, calculado con una sola consulta al ledger"""
        clients = self.list_active_clients(owner_id)
        balances = BalanceService(self.db).balances_by_client(owner_id, [c.id for c in clients])
        return [self._with_balance(c, balances.get(c.id, ZERO)) for c in clients]

    def _with_balance(self, client: Client, balance: Decimal) -> ClientWithBalance:
        data = ClientOut.model_validate(client).model_dump()
        return ClientWithBalance(**data, balance=balance, status=BalanceStatus.from_balance(balance))

    # ===== Comandos =====

    def create_client(self, client_data: ClientCreate, owner_id: UUID, user_id: UUID) -> Client:
        """
        Crear un cliente. Si trae saldo inicial se registra como primer
        movimiento (fiado si es deuda, pago si es a favor) en la misma
        transacción: o se guardan ambos o ninguno.
        """
        name = self._validate_name(client_data.name)
        name_key = normalize_name(name)
        credit_limit = optional_limit(client_data.credit_limit)

        opening_amount = None
        if client_data.opening_balance is not None:
            opening_amount = to_money(client_data.opening_balance, field="opening_balance")
            if opening_amount < 0:
                raise ValidationError("El saldo inicial debe ser un monto positivo", field="opening_balance")
            if opening_amount == 0:
                opening_amount = None
            elif client_data.opening_kind is None:
                raise ValidationError("Indicá si el saldo inicial es deuda o a favor", field="opening_kind")

        self._ensure_unique_name(owner_id, name_key)

        try:
            client = Client(
                id=uuid4(),
                owner_id=owner_id,
                name=name,
                name_key=name_key,
                last_name=client_data.last_name,
                phone=client_data.phone,
                note=client_data.note,
                credit_limit=credit_limit,
                active=True,
                created_by=user_id,
                updated_by=user_id
            )
            self.db.add(client)

            if opening_amount is not None:
                kind = EntryKind.PAYMENT if client_data.opening_kind == OpeningKind.CREDIT else EntryKind.CREDIT_SALE
                self.db.add(LedgerEntry(
                    owner_id=owner_id,
                    client_id=client.id,
                    kind=kind,
                    amount=opening_amount,
                    description_or_method=OPENING_BALANCE_DESCRIPTION,
                    occurred_date=business_today(),
                    occurred_time=business_time(),
                    created_by=user_id
                ))

            self.db.commit()
            self.db.refresh(client)

            logger.info(f"Client {client.id} created for owner {owner_id}")
            return client

        except IntegrityError as e:
            self.db.rollback()
            self._handle_integrity_error(e)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating client for owner {owner_id}: {e}")
            raise

    def update_client(self, client_id: UUID, client_update: ClientUpdate, owner_id: UUID, user_id: UUID) -> Client:
        """
        Reemplazar los datos del cliente. Nunca modifica movimientos; un
        límite nuevo no afecta fiados ya registrados.
        """
        client = self.get_client(client_id, owner_id)

        name = self._validate_name(client_update.name)
        name_key = normalize_name(name)
        credit_limit = optional_limit(client_update.credit_limit)

        self._ensure_unique_name(owner_id, name_key, exclude_id=client.id)

        try:
            client.name = name
            client.name_key = name_key
            client.last_name = client_update.last_name
            client.phone = client_update.phone
            client.note = client_update.note
            client.credit_limit = credit_limit
            client.updated_by = user_id

            self.db.commit()
            self.db.refresh(client)

            logger.info(f"Client {client.id} updated by {user_id}")
            return client

        except IntegrityError as e:
            self.db.rollback()
            self._handle_integrity_error(e)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating client {client_id}: {e}")
            raise

    def deactivate_client(self, client_id: UUID, owner_id: UUID, user_id: UUID) -> Client:
        """Baja lógica. Los movimientos y el saldo se conservan."""
        client = self.get_client(client_id, owner_id)

        if not client.active:
            raise ConflictError("El cliente ya está dado de baja", field="client_id", error_code="ALREADY_INACTIVE")

        try:
            client.active = False
            client.deactivated_at = datetime.now(timezone.utc)
            client.updated_by = user_id

            self.db.commit()
            self.db.refresh(client)

            logger.info(f"Client {client.id} deactivated by {user_id}")
            return client

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deactivating client {client_id}: {e}")
            raise
