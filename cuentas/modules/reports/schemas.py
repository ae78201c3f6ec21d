"""
Pydantic schemas for account reports

Response models for the debtor report and the account statement.
"""

from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from cuentas.modules.clients.schemas import BalanceStatus, ClientSummary
from cuentas.modules.ledger.models import EntryKind


class DebtorFilter(str, Enum):
    ALL = "all"
    OWES = "owes"
    IN_FAVOR = "in_favor"


# Debtor report

class DebtorRow(BaseModel):
    client_id: UUID
    name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None
    credit_limit: Optional[Decimal] = None
    balance: Decimal
    status: BalanceStatus
    last_movement_date: Optional[date] = None
    days_since_last_movement: Optional[int] = None


class DebtorReport(BaseModel):
    as_of: date
    status_filter: DebtorFilter
    rows: List[DebtorRow]
    total_owed: Decimal = Field(..., description="Suma de saldos deudores")
    total_in_favor: Decimal = Field(..., description="Suma de saldos a favor (en valor absoluto)")
    net: Decimal = Field(..., description="total_owed - total_in_favor")
    clients_owing: int
    clients_in_favor: int


# Account statement

class StatementRow(BaseModel):
    entry_id: int
    client_id: UUID
    client_name: str
    kind: EntryKind
    occurred_date: date
    occurred_time: time
    description: Optional[str] = None
    debit: Decimal = Field(..., description="Debe: fiado")
    credit: Decimal = Field(..., description="Haber: pago")
    balance_after: Optional[Decimal] = Field(None, description="Sólo en el estado de un cliente")
    reverses_entry_id: Optional[int] = None


class StatementTotals(BaseModel):
    total_debit: Decimal
    total_credit: Decimal
    count_credit_sales: int
    count_payments: int
    net: Decimal


class AccountStatement(BaseModel):
    client: Optional[ClientSummary] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None
    rows: List[StatementRow]
    totals: StatementTotals
