"""
Router para el ledger de cuenta corriente

- /clients/{client_id}/...: fiados, pagos, saldo, historial y consulta de límite
- /ledger/entries: movimientos del día y anulaciones
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Path, status

from cuentas.common.dates import business_today
from cuentas.dependencies.dbDependencies import db_dependency
from cuentas.modules.auth.dependencies import AuthDependencies
from cuentas.modules.auth.schemas import AuthContext, Permission
from cuentas.modules.clients.schemas import BalanceStatus
from cuentas.modules.clients.service import ClientService
from cuentas.modules.ledger.balance import BalanceService, ZERO
from cuentas.modules.ledger.credit_policy import CreditPolicy
from cuentas.modules.ledger.models import EntryKind
from cuentas.modules.ledger.service import LedgerService
from cuentas.modules.ledger.schemas import (
    CreditSaleCreate, PaymentCreate, CreditCheckRequest, VoidRequest,
    LedgerEntryOut, DailyEntryOut, DailyEntryList, BalanceOut,
    HistoryRow, ClientHistory, CreditEvaluationOut
)

client_ledger_router = APIRouter(prefix="/clients", tags=["Ledger"])
entries_router = APIRouter(prefix="/ledger", tags=["Ledger"])


# ===== MOVIMIENTOS POR CLIENTE =====

@client_ledger_router.post(
    "/{client_id}/credit-sales",
    response_model=LedgerEntryOut,
    status_code=status.HTTP_201_CREATED
)
def record_credit_sale(
    sale: CreditSaleCreate,
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.RECORD_ENTRIES))
):
    """
    Registrar un fiado.

    No se bloquea por límite de crédito: consultar antes
    POST /clients/{client_id}/credit-check si se quiere advertir.
    """
    return LedgerService(db).record_credit_sale(
        client_id=client_id,
        owner_id=auth_context.owner_id,
        amount=sale.amount,
        created_by=auth_context.user_id,
        description=sale.description,
        occurred_date=sale.occurred_date
    )


@client_ledger_router.post(
    "/{client_id}/payments",
    response_model=LedgerEntryOut,
    status_code=status.HTTP_201_CREATED
)
def record_payment(
    payment: PaymentCreate,
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.RECORD_ENTRIES))
):
    """Registrar un pago. Un pago mayor a la deuda deja saldo a favor."""
    return LedgerService(db).record_payment(
        client_id=client_id,
        owner_id=auth_context.owner_id,
        amount=payment.amount,
        created_by=auth_context.user_id,
        payment_method=payment.payment_method,
        occurred_date=payment.occurred_date
    )


@client_ledger_router.post("/{client_id}/credit-check", response_model=CreditEvaluationOut)
def check_credit(
    credit_check: CreditCheckRequest,
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.RECORD_ENTRIES))
):
    """Evaluar si un fiado propuesto superaría el límite (sólo advertencia)"""
    client = ClientService(db).get_client(client_id, auth_context.owner_id)
    evaluation = CreditPolicy(db).evaluate(client, credit_check.amount)
    return CreditEvaluationOut(
        client_id=client.id,
        proposed_amount=evaluation.proposed_amount,
        current_balance=evaluation.current_balance,
        new_balance=evaluation.new_balance,
        credit_limit=evaluation.credit_limit,
        exceeds_limit=evaluation.exceeds_limit,
        excess=evaluation.excess
    )


@client_ledger_router.get("/{client_id}/balance", response_model=BalanceOut)
def get_balance(
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)
):
    client = ClientService(db).get_client(client_id, auth_context.owner_id)
    balance = BalanceService(db).current_balance(client.id, auth_context.owner_id)
    return BalanceOut(client_id=client.id, balance=balance, status=BalanceStatus.from_balance(balance))


@client_ledger_router.get("/{client_id}/history", response_model=ClientHistory)
def get_history(
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)
):
    """Historial completo en orden cronológico con saldo acumulado"""
    client = ClientService(db).get_client(client_id, auth_context.owner_id)
    rows = BalanceService(db).running_balance(client.id, auth_context.owner_id)
    return ClientHistory(
        client_id=client.id,
        rows=[
            HistoryRow(entry=LedgerEntryOut.model_validate(row.entry), balance_after=row.balance_after)
            for row in rows
        ],
        balance=rows[-1].balance_after if rows else ZERO
    )


# ===== MOVIMIENTOS =====

@entries_router.get("/entries", response_model=DailyEntryList)
def get_entries_for_date(
    db: db_dependency,
    on_date: Optional[date] = Query(None, alias="date", description="Día de negocio (por defecto hoy)"),
    kind: Optional[EntryKind] = Query(None, description="credit_sale o payment"),
    auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)
):
    """Movimientos de todos los clientes en un día, los más recientes primero"""
    on_date = on_date or business_today()
    rows = LedgerService(db).entries_for_date(auth_context.owner_id, on_date, kind)

    items = []
    total_sales = Decimal("0.00")
    total_payments = Decimal("0.00")
    for entry, client in rows:
        data = LedgerEntryOut.model_validate(entry).model_dump()
        items.append(DailyEntryOut(**data, client_name=client.name, client_last_name=client.last_name))
        if entry.kind == EntryKind.CREDIT_SALE:
            total_sales += entry.amount
        else:
            total_payments += entry.amount

    return DailyEntryList(
        on_date=on_date,
        items=items,
        total_credit_sales=total_sales,
        total_payments=total_payments
    )


@entries_router.post(
    "/entries/{entry_id}/void",
    response_model=LedgerEntryOut,
    status_code=status.HTTP_201_CREATED
)
def void_entry(
    db: db_dependency,
    void_request: Optional[VoidRequest] = None,
    entry_id: int = Path(..., description="ID del movimiento a anular"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.VOID_ENTRIES))
):
    """
    Anular un movimiento con un movimiento compensatorio de tipo opuesto.
    El original se conserva; cada movimiento se puede anular una sola vez.
    """
    return LedgerService(db).void_entry(
        entry_id=entry_id,
        owner_id=auth_context.owner_id,
        created_by=auth_context.user_id,
        reason=void_request.reason if void_request else None
    )
