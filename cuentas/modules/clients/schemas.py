"""
Esquemas Pydantic para el módulo de Clientes

Las reglas de negocio (nombre obligatorio, límite >= 0, unicidad) las
aplica ClientService para que también valgan en llamadas directas al
servicio; aquí sólo se normalizan los textos.
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum


# ===== ENUMS =====

class OpeningKind(str, Enum):
    DEBT = "debt"
    CREDIT = "credit"


class BalanceStatus(str, Enum):
    OWES = "owes"          # El cliente debe
    IN_FAVOR = "in_favor"  # Saldo a favor del cliente
    SETTLED = "settled"    # Sin saldo

    @classmethod
    def from_balance(cls, balance: Decimal) -> "BalanceStatus":
        if balance > 0:
            return cls.OWES
        if balance < 0:
            return cls.IN_FAVOR
        return cls.SETTLED


# ===== CLIENT SCHEMAS =====

class ClientBase(BaseModel):
    name: str = Field(..., max_length=100, description="Nombre del cliente")
    last_name: Optional[str] = Field(None, max_length=100, description="Apellido")
    phone: Optional[str] = Field(None, max_length=50, description="Teléfono")
    credit_limit: Optional[Decimal] = Field(None, description="Límite de crédito (vacío = sin límite)")
    note: Optional[str] = Field(None, description="Comentario libre")

    @field_validator('name', mode='before')
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('last_name', 'phone', 'note', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class ClientCreate(ClientBase):
    # Sólo en el alta
    opening_balance: Optional[Decimal] = Field(None, description="Saldo inicial (monto positivo)")
    opening_kind: Optional[OpeningKind] = Field(None, description="debt: el cliente debe, credit: saldo a favor")


class ClientUpdate(ClientBase):
    """Reemplazo completo de los atributos del cliente (no toca movimientos)"""
    pass


class ClientOut(ClientBase):
    id: UUID
    owner_id: UUID
    active: bool
    deactivated_at: Optional[datetime] = None
    created_by: UUID
    updated_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientWithBalance(ClientOut):
    balance: Decimal
    status: BalanceStatus


class ClientSummary(BaseModel):
    """Esquema simplificado para reportes"""
    id: UUID
    name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None
    credit_limit: Optional[Decimal] = None
    active: bool

    class Config:
        from_attributes = True


class ClientList(BaseModel):
    items: List[ClientOut]
    total: int


class ClientBalanceList(BaseModel):
    items: List[ClientWithBalance]
    total: int
