"""
Esquemas Pydantic para el ledger de cuenta corriente
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, time, datetime

from cuentas.modules.clients.schemas import BalanceStatus
from cuentas.modules.ledger.models import EntryKind


# ===== REQUESTS =====

class CreditSaleCreate(BaseModel):
    amount: Decimal = Field(..., description="Monto del fiado (mayor a 0)")
    description: Optional[str] = Field(None, max_length=255, description="Detalle de lo fiado")
    occurred_date: Optional[date] = Field(None, description="Fecha del fiado (por defecto hoy)")


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., description="Monto del pago (mayor a 0)")
    payment_method: Optional[str] = Field(None, max_length=255, description="Método de pago")
    occurred_date: Optional[date] = Field(None, description="Fecha del pago (por defecto hoy)")


class CreditCheckRequest(BaseModel):
    amount: Decimal = Field(..., description="Monto del fiado propuesto")


class VoidRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=200, description="Motivo de la anulación")


# ===== RESPONSES =====

class LedgerEntryOut(BaseModel):
    id: int
    owner_id: UUID
    client_id: UUID
    kind: EntryKind
    amount: Decimal
    description: Optional[str] = None
    payment_method: Optional[str] = None
    occurred_date: date
    occurred_time: time
    reverses_entry_id: Optional[int] = None
    created_by: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DailyEntryOut(LedgerEntryOut):
    client_name: str
    client_last_name: Optional[str] = None


class DailyEntryList(BaseModel):
    on_date: date
    items: List[DailyEntryOut]
    total_credit_sales: Decimal
    total_payments: Decimal


class BalanceOut(BaseModel):
    client_id: UUID
    balance: Decimal
    status: BalanceStatus


class HistoryRow(BaseModel):
    entry: LedgerEntryOut
    balance_after: Decimal


class ClientHistory(BaseModel):
    client_id: UUID
    rows: List[HistoryRow]
    balance: Decimal


class CreditEvaluationOut(BaseModel):
    client_id: UUID
    proposed_amount: Decimal
    current_balance: Decimal
    new_balance: Decimal
    credit_limit: Optional[Decimal] = None
    exceeds_limit: bool
    excess: Decimal
