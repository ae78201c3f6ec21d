"""
Reports Router

Debtor report and account statements for the authenticated owner.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from cuentas.dependencies.dbDependencies import db_dependency
from cuentas.modules.auth.dependencies import AuthDependencies
from cuentas.modules.auth.schemas import AuthContext, Permission
from cuentas.modules.reports.schemas import AccountStatement, DebtorFilter, DebtorReport
from cuentas.modules.reports.service import AccountReportService


router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/debtors", response_model=DebtorReport)
def get_debtor_report(
    db: db_dependency,
    status: DebtorFilter = Query(DebtorFilter.ALL, description="all, owes o in_favor"),
    as_of: Optional[date] = Query(None, description="Fecha de referencia para los días sin movimiento"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.VIEW_REPORTS))
):
    """Clientes activos con saldo distinto de cero, de mayor a menor saldo."""
    service = AccountReportService(db, auth_context.owner_id)
    return service.debtor_report(status_filter=status, as_of=as_of)


@router.get("/statement", response_model=AccountStatement)
def get_account_statement(
    db: db_dependency,
    client_id: Optional[UUID] = Query(None, description="Cliente (vacío = todos los clientes)"),
    date_from: Optional[date] = Query(None, description="Desde (inclusive)"),
    date_to: Optional[date] = Query(None, description="Hasta (inclusive)"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.VIEW_REPORTS))
):
    """
    Estado de cuenta con columnas debe/haber.

    Con client_id cada fila trae el saldo acumulado (incluyendo los
    movimientos previos al rango); para todos los clientes sólo totales.
    """
    service = AccountReportService(db, auth_context.owner_id)
    return service.account_statement(client_id=client_id, date_from=date_from, date_to=date_to)
