"""
Report services for client running accounts

Debtor report and account statement. Balances are always replayed from
the ledger in chronological order; nothing is read from a cached total.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_
from sqlalchemy.orm import Session

from cuentas.common.dates import business_today
from cuentas.common.exceptions import ValidationError
from cuentas.modules.clients.models import Client
from cuentas.modules.clients.schemas import BalanceStatus, ClientSummary
from cuentas.modules.clients.service import ClientService
from cuentas.modules.ledger.balance import BalanceService, RunningBalanceRow, ZERO, replay
from cuentas.modules.ledger.models import LedgerEntry, EntryKind
from cuentas.modules.reports.schemas import (
    AccountStatement, DebtorFilter, DebtorReport, DebtorRow, StatementRow, StatementTotals
)

logger = logging.getLogger(__name__)


class BaseReportService:
    """Base service for owner-scoped reports"""

    def __init__(self, db: Session, owner_id: UUID):
        self.db = db
        self.owner_id = owner_id

    def _get_base_entry_query(self):
        """Get base query for ledger entries with owner filtering"""
        return self.db.query(LedgerEntry).filter(
            LedgerEntry.owner_id == self.owner_id
        )

    def _apply_date_filter(self, query, date_field, start_date: Optional[date], end_date: Optional[date]):
        """Apply an optional, inclusive date range filter to a query"""
        conditions = []
        if start_date:
            conditions.append(date_field >= start_date)
        if end_date:
            conditions.append(date_field <= end_date)
        if conditions:
            query = query.filter(and_(*conditions))
        return query

    def _validate_date_window(self, date_from: Optional[date], date_to: Optional[date]):
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must be before or equal to date_to", field="date_from")

    def _calculate_days_difference(self, start_date: date, end_date: date) -> int:
        """Calculate number of days between two dates"""
        return (end_date - start_date).days


class AccountReportService(BaseReportService):
    """Debtor report and account statements"""

    def debtor_report(
        self,
        status_filter: DebtorFilter = DebtorFilter.ALL,
        as_of: Optional[date] = None
    ) -> DebtorReport:
        """
        Active clients with a non-zero balance, ordered by balance descending.

        Totals always cover every non-zero client; the filter only limits
        the listed rows.
        """
        as_of = as_of or business_today()

        clients = self.db.query(Client).filter(
            Client.owner_id == self.owner_id,
            Client.active.is_(True)
        ).all()
        client_ids = [c.id for c in clients]

        balances = BalanceService(self.db).balances_by_client(self.owner_id, client_ids)
        last_dates = self._last_movement_dates(client_ids)

        rows: List[DebtorRow] = []
        total_owed = ZERO
        total_in_favor = ZERO
        clients_owing = 0
        clients_in_favor = 0

        for client in clients:
            balance = balances.get(client.id, ZERO)
            if balance == 0:
                continue

            if balance > 0:
                total_owed += balance
                clients_owing += 1
            else:
                total_in_favor += -balance
                clients_in_favor += 1

            status = BalanceStatus.from_balance(balance)
            if status_filter == DebtorFilter.OWES and status != BalanceStatus.OWES:
                continue
            if status_filter == DebtorFilter.IN_FAVOR and status != BalanceStatus.IN_FAVOR:
                continue

            last_date = last_dates.get(client.id)
            rows.append(DebtorRow(
                client_id=client.id,
                name=client.name,
                last_name=client.last_name,
                phone=client.phone,
                credit_limit=client.credit_limit,
                balance=balance,
                status=status,
                last_movement_date=last_date,
                days_since_last_movement=self._calculate_days_difference(last_date, as_of) if last_date else None
            ))

        rows.sort(key=lambda r: (-r.balance, r.name.casefold()))

        logger.debug(f"Debtor report for owner {self.owner_id}: {len(rows)} rows")

        return DebtorReport(
            as_of=as_of,
            status_filter=status_filter,
            rows=rows,
            total_owed=total_owed,
            total_in_favor=total_in_favor,
            net=total_owed - total_in_favor,
            clients_owing=clients_owing,
            clients_in_favor=clients_in_favor
        )

    def _last_movement_dates(self, client_ids: List[UUID]) -> Dict[UUID, date]:
        if not client_ids:
            return {}
        rows = self.db.query(LedgerEntry.client_id, LedgerEntry.occurred_date).filter(
            LedgerEntry.owner_id == self.owner_id,
            LedgerEntry.client_id.in_(client_ids)
        ).all()

        last: Dict[UUID, date] = {}
        for client_id, occurred_date in rows:
            if client_id not in last or occurred_date > last[client_id]:
                last[client_id] = occurred_date
        return last

    def account_statement(
        self,
        client_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> AccountStatement:
        """
        Movements in [date_from, date_to] (both optional, inclusive).

        With client_id the full history is replayed so that each row's
        balance_after reflects everything before the window. Without it,
        rows of all clients are listed with no running balance.
        """
        self._validate_date_window(date_from, date_to)

        if client_id is not None:
            return self._client_statement(client_id, date_from, date_to)
        return self._all_clients_statement(date_from, date_to)

    def _client_statement(
        self,
        client_id: UUID,
        date_from: Optional[date],
        date_to: Optional[date]
    ) -> AccountStatement:
        client = ClientService(self.db).get_client(client_id, self.owner_id)
        history = BalanceService(self.db).history(client.id, self.owner_id)

        opening = ZERO
        closing = ZERO
        window: List[RunningBalanceRow] = []
        for row in replay(history):
            occurred = row.entry.occurred_date
            if date_from and occurred < date_from:
                opening = closing = row.balance_after
            elif date_to and occurred > date_to:
                break
            else:
                window.append(row)
                closing = row.balance_after

        rows = [self._statement_row(r.entry, client, r.balance_after) for r in window]

        return AccountStatement(
            client=ClientSummary.model_validate(client),
            date_from=date_from,
            date_to=date_to,
            opening_balance=opening,
            closing_balance=closing,
            rows=rows,
            totals=self._totals(r.entry for r in window)
        )

    def _all_clients_statement(self, date_from: Optional[date], date_to: Optional[date]) -> AccountStatement:
        query = self.db.query(LedgerEntry, Client).join(
            Client, LedgerEntry.client_id == Client.id
        ).filter(
            LedgerEntry.owner_id == self.owner_id
        )
        query = self._apply_date_filter(query, LedgerEntry.occurred_date, date_from, date_to)
        results = query.order_by(
            LedgerEntry.occurred_date,
            LedgerEntry.occurred_time,
            LedgerEntry.id
        ).all()

        return AccountStatement(
            date_from=date_from,
            date_to=date_to,
            rows=[self._statement_row(entry, client, None) for entry, client in results],
            totals=self._totals(entry for entry, _ in results)
        )

    def _statement_row(self, entry: LedgerEntry, client: Client, balance_after: Optional[Decimal]) -> StatementRow:
        is_sale = entry.kind == EntryKind.CREDIT_SALE
        return StatementRow(
            entry_id=entry.id,
            client_id=client.id,
            client_name=client.full_name,
            kind=entry.kind,
            occurred_date=entry.occurred_date,
            occurred_time=entry.occurred_time,
            description=entry.description_or_method,
            debit=entry.amount if is_sale else ZERO,
            credit=ZERO if is_sale else entry.amount,
            balance_after=balance_after,
            reverses_entry_id=entry.reverses_entry_id
        )

    def _totals(self, entries: Iterable[LedgerEntry]) -> StatementTotals:
        total_debit = ZERO
        total_credit = ZERO
        count_sales = 0
        count_payments = 0
        for entry in entries:
            if entry.kind == EntryKind.CREDIT_SALE:
                total_debit += entry.amount
                count_sales += 1
            else:
                total_credit += entry.amount
                count_payments += 1

        return StatementTotals(
            total_debit=total_debit,
            total_credit=total_credit,
            count_credit_sales=count_sales,
            count_payments=count_payments,
            net=total_debit - total_credit
        )
