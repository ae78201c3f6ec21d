from enum import Enum
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    OWNER = "owner"
    EMPLOYEE = "employee"


class Permission(str, Enum):
    """Permisos que un dueño puede otorgar a sus empleados"""
    MANAGE_CLIENTS = "manage_clients"          # Crear/editar clientes
    DEACTIVATE_CLIENTS = "deactivate_clients"  # Dar de baja clientes
    RECORD_ENTRIES = "record_entries"          # Registrar fiados y pagos
    VOID_ENTRIES = "void_entries"              # Anular movimientos
    VIEW_REPORTS = "view_reports"              # Reporte de deudores y estados de cuenta


class AuthContext(BaseModel):
    """
    Contexto resuelto del llamador.

    `owner_id` es el "usuario efectivo": el dueño de la cuenta, tanto si el
    llamador es el propio dueño como si es un empleado operando para él.
    `user_id` identifica al operador real (se guarda en created_by).
    """
    user_id: UUID
    owner_id: UUID
    role: UserRole
    permissions: List[Permission] = Field(default_factory=list)

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER

    def has_permission(self, permission: Permission) -> bool:
        return self.is_owner or permission in self.permissions
