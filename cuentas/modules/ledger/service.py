"""
Servicios de negocio para el ledger de cuenta corriente

- Registro de fiados y pagos (un commit por movimiento)
- Anulación por movimiento compensatorio
- Movimientos de un día de negocio

Registrar un fiado NO consulta el límite de crédito (ver CreditPolicy) y
no genera ningún movimiento de caja.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cuentas.common.dates import business_today, business_time
from cuentas.common.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from cuentas.common.money import positive_amount
from cuentas.modules.clients.models import Client
from cuentas.modules.clients.service import ClientService
from cuentas.modules.ledger.models import LedgerEntry, EntryKind

logger = logging.getLogger(__name__)

VOID_DESCRIPTION_PREFIX = "Anulación"


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class LedgerService:
    """Servicio para registrar y consultar movimientos"""

    def __init__(self, db: Session):
        self.db = db
        self.clients = ClientService(db)

    def record_credit_sale(
        self,
        client_id: UUID,
        owner_id: UUID,
        amount,
        created_by: UUID,
        description: Optional[str] = None,
        occurred_date: Optional[date] = None
    ) -> LedgerEntry:
        """Registrar un fiado (aumenta el saldo del cliente)"""
        return self._record(
            EntryKind.CREDIT_SALE, client_id, owner_id, amount, created_by,
            _clean_text(description), occurred_date
        )

    def record_payment(
        self,
        client_id: UUID,
        owner_id: UUID,
        amount,
        created_by: UUID,
        payment_method: Optional[str] = None,
        occurred_date: Optional[date] = None
    ) -> LedgerEntry:
        """Registrar un pago (disminuye el saldo; puede dejarlo a favor)"""
        return self._record(
            EntryKind.PAYMENT, client_id, owner_id, amount, created_by,
            _clean_text(payment_method), occurred_date
        )

    def _record(
        self,
        kind: EntryKind,
        client_id: UUID,
        owner_id: UUID,
        amount,
        created_by: UUID,
        text: Optional[str],
        occurred_date: Optional[date]
    ) -> LedgerEntry:
        amount = positive_amount(amount)
        client = self.clients.get_client(client_id, owner_id)

        if not client.active:
            raise ValidationError(
                "El cliente está dado de baja", field="client_id", error_code="CLIENT_INACTIVE"
            )

        try:
            entry = LedgerEntry(
                owner_id=owner_id,
                client_id=client.id,
                kind=kind,
                amount=amount,
                description_or_method=text,
                occurred_date=occurred_date or business_today(),
                occurred_time=business_time(),
                created_by=created_by
            )
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)

            logger.info(f"Recorded {kind.value} {entry.id} of {amount} for client {client.id}")
            return entry

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recording {kind.value} for client {client_id}: {e}")
            raise

    def get_entry(self, entry_id: int, owner_id: UUID) -> LedgerEntry:
        entry = self.db.query(LedgerEntry).filter(LedgerEntry.id == entry_id).first()

        if not entry:
            raise NotFoundError("Movimiento no encontrado", field="entry_id")

        if entry.owner_id != owner_id:
            logger.warning(f"Owner {owner_id} attempted to access ledger entry {entry_id} of another owner")
            raise AuthorizationError("No tienes acceso a este movimiento", field="entry_id")

        return entry

    def void_entry(
        self,
        entry_id: int,
        owner_id: UUID,
        created_by: UUID,
        reason: Optional[str] = None
    ) -> LedgerEntry:
        """
        Anular un movimiento agregando otro de tipo opuesto por el mismo monto.

        El original no se modifica. Se puede anular aunque el cliente esté
        dado de baja, para poder corregir su saldo.
        """
        original = self.get_entry(entry_id, owner_id)

        if original.is_reversal:
            raise ConflictError(
                "No se puede anular una anulación", field="entry_id", error_code="ENTRY_IS_REVERSAL"
            )

        already = self.db.query(LedgerEntry.id).filter(
            LedgerEntry.reverses_entry_id == original.id
        ).first()
        if already:
            raise ConflictError(
                "El movimiento ya fue anulado", field="entry_id", error_code="ENTRY_ALREADY_VOIDED"
            )

        reason = _clean_text(reason)
        description = f"{VOID_DESCRIPTION_PREFIX}: {reason}" if reason else VOID_DESCRIPTION_PREFIX

        try:
            reversal = LedgerEntry(
                owner_id=owner_id,
                client_id=original.client_id,
                kind=original.kind.opposite,
                amount=original.amount,
                description_or_method=description[:255],
                occurred_date=business_today(),
                occurred_time=business_time(),
                reverses_entry_id=original.id,
                created_by=created_by
            )
            self.db.add(reversal)
            self.db.commit()
            self.db.refresh(reversal)

            logger.info(f"Ledger entry {original.id} voided by {reversal.id} (user {created_by})")
            return reversal

        except IntegrityError as e:
            # Dos anulaciones simultáneas: la restricción única sobre reverses_entry_id decide
            self.db.rollback()
            logger.warning(f"Concurrent void of ledger entry {entry_id}: {e}")
            raise ConflictError(
                "El movimiento ya fue anulado", field="entry_id", error_code="ENTRY_ALREADY_VOIDED"
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error voiding ledger entry {entry_id}: {e}")
            raise

    def entries_for_date(
        self,
        owner_id: UUID,
        on_date: date,
        kind: Optional[EntryKind] = None
    ) -> List[Tuple[LedgerEntry, Client]]:
        """Movimientos de todos los clientes en un día, los más recientes primero"""
        query = self.db.query(LedgerEntry, Client).join(
            Client, LedgerEntry.client_id == Client.id
        ).filter(
            LedgerEntry.owner_id == owner_id,
            LedgerEntry.occurred_date == on_date
        )
        if kind is not None:
            query = query.filter(LedgerEntry.kind == kind)

        return query.order_by(LedgerEntry.occurred_time.desc(), LedgerEntry.id.desc()).all()
