"""
Router para el módulo de Clientes

Endpoints REST para el registro de clientes con cuenta corriente.
Todos los endpoints requieren autenticación y están acotados al dueño
resuelto en el token (owner_id).
"""

from fastapi import APIRouter, Depends, Query, Path, status
from typing import Union
from uuid import UUID

from cuentas.dependencies.dbDependencies import db_dependency
from cuentas.modules.auth.dependencies import AuthDependencies
from cuentas.modules.auth.schemas import AuthContext, Permission
from cuentas.modules.clients.service import ClientService
from cuentas.modules.clients.schemas import (
    ClientCreate, ClientUpdate, ClientOut, ClientWithBalance, ClientList, ClientBalanceList
)

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(
    client_data: ClientCreate,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.MANAGE_CLIENTS))
):
    """
    Crear un cliente

    - **name**: Nombre (requerido, único por dueño sin distinguir mayúsculas)
    - **credit_limit**: Límite de crédito (vacío = sin límite)
    - **opening_balance** + **opening_kind**: saldo inicial como deuda o a favor
    """
    service = ClientService(db)
    return service.create_client(client_data, auth_context.owner_id, auth_context.user_id)


@router.get("/", response_model=Union[ClientBalanceList, ClientList])
def list_clients(
    db: db_dependency,
    with_balance: bool = Query(False, description="Incluir el saldo actual de cada cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)
):
    """Listar clientes activos ordenados por nombre"""
    service = ClientService(db)
    if with_balance:
        items = service.list_clients_with_balance(auth_context.owner_id)
        return ClientBalanceList(items=items, total=len(items))

    clients = service.list_active_clients(auth_context.owner_id)
    return ClientList(items=[ClientOut.model_validate(c) for c in clients], total=len(clients))


@router.get("/{client_id}", response_model=ClientWithBalance)
def get_client(
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)
):
    """Obtener un cliente (activo o dado de baja) con su saldo actual"""
    return ClientService(db).get_client_with_balance(client_id, auth_context.owner_id)


@router.put("/{client_id}", response_model=ClientOut)
def update_client(
    client_update: ClientUpdate,
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.MANAGE_CLIENTS))
):
    """Actualizar los datos de un cliente. No modifica sus movimientos."""
    service = ClientService(db)
    return service.update_client(client_id, client_update, auth_context.owner_id, auth_context.user_id)


@router.delete("/{client_id}", response_model=ClientOut)
def deactivate_client(
    db: db_dependency,
    client_id: UUID = Path(..., description="ID del cliente"),
    auth_context: AuthContext = Depends(AuthDependencies.require_permission(Permission.DEACTIVATE_CLIENTS))
):
    """Dar de baja un cliente (baja lógica, aunque tenga saldo)"""
    service = ClientService(db)
    return service.deactivate_client(client_id, auth_context.owner_id, auth_context.user_id)
