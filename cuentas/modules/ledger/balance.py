"""
Motor de saldos de cuenta corriente

El saldo de un cliente nunca se almacena: es el pliegue del historial en
orden cronológico (fecha, hora, orden de inserción), partiendo de 0.
    saldo = Σ fiados − Σ pagos
Saldo > 0: el cliente debe. Saldo < 0: saldo a favor del cliente.

Las funciones puras (chronological, compute_balance, replay) no tocan la
base de datos; BalanceService carga los movimientos y las aplica.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from cuentas.modules.ledger.models import LedgerEntry, EntryKind

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class RunningBalanceRow:
    """Movimiento con el saldo acumulado inmediatamente después de aplicarlo"""
    entry: LedgerEntry
    balance_after: Decimal


def chronological_key(entry: LedgerEntry):
    return (entry.occurred_date, entry.occurred_time, entry.id)


def chronological(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    return sorted(entries, key=chronological_key)


def signed_amount(kind: EntryKind, amount: Decimal) -> Decimal:
    return amount if kind == EntryKind.CREDIT_SALE else -amount


def compute_balance(entries: Iterable[LedgerEntry]) -> Decimal:
    """La suma no depende del orden; el resultado es exacto (Decimal)."""
    total = ZERO
    for entry in entries:
        total += entry.signed_amount
    return total


def replay(entries: Iterable[LedgerEntry], opening: Decimal = ZERO) -> List[RunningBalanceRow]:
    """
    Recorre el historial en orden cronológico acumulando el saldo.

    El saldo del último elemento es igual a compute_balance(entries).
    """
    rows = []
    balance = opening
    for entry in chronological(entries):
        balance += entry.signed_amount
        rows.append(RunningBalanceRow(entry=entry, balance_after=balance))
    return rows


class BalanceService:
    """Consultas de saldo sobre el ledger persistido"""

    def __init__(self, db: Session):
        self.db = db

    def _get_client(self, client_id: UUID, owner_id: UUID):
        # clients.service importa este módulo
        from cuentas.modules.clients.service import ClientService
        return ClientService(self.db).get_client(client_id, owner_id)

    def history(self, client_id: UUID, owner_id: UUID) -> List[LedgerEntry]:
        """
        Historial completo del cliente en orden cronológico.

        Raises:
            NotFoundError: el cliente no existe
            AuthorizationError: el cliente pertenece a otro dueño
        """
        self._get_client(client_id, owner_id)
        return self.db.query(LedgerEntry).filter(
            LedgerEntry.client_id == client_id
        ).order_by(
            LedgerEntry.occurred_date,
            LedgerEntry.occurred_time,
            LedgerEntry.id
        ).all()

    def current_balance(self, client_id: UUID, owner_id: UUID) -> Decimal:
        self._get_client(client_id, owner_id)
        rows = self.db.query(LedgerEntry.kind, LedgerEntry.amount).filter(
            LedgerEntry.client_id == client_id
        ).all()
        total = ZERO
        for kind, amount in rows:
            total += signed_amount(kind, amount)
        return total

    def running_balance(self, client_id: UUID, owner_id: UUID) -> List[RunningBalanceRow]:
        return replay(self.history(client_id, owner_id))

    def balances_by_client(
        self,
        owner_id: UUID,
        client_ids: Optional[Sequence[UUID]] = None
    ) -> Dict[UUID, Decimal]:
        """
        Saldos de varios clientes del dueño con una sola consulta.
        Los clientes sin movimientos no aparecen en el resultado (saldo 0).
        """
        query = self.db.query(LedgerEntry.client_id, LedgerEntry.kind, LedgerEntry.amount).filter(
            LedgerEntry.owner_id == owner_id
        )
        if client_ids is not None:
            if not client_ids:
                return {}
            query = query.filter(LedgerEntry.client_id.in_(list(client_ids)))

        balances: Dict[UUID, Decimal] = {}
        for client_id, kind, amount in query.all():
            balances[client_id] = balances.get(client_id, ZERO) + signed_amount(kind, amount)
        return balances
