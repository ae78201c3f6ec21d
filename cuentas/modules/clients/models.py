"""
Modelos SQLAlchemy para el módulo de Clientes (cuenta corriente)

- Cada cliente pertenece a un único dueño (owner_id)
- El nombre es único por dueño, comparado normalizado (name_key)
- Baja lógica: active=False; el cliente y su historial siguen consultables
- El saldo NO se guarda: se deriva siempre del ledger
"""

from cuentas.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Text, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from uuid import uuid4
from cuentas.common.mixins import TenantMixin, TimestampMixin


# ===== MODELOS =====

class Client(Base, TenantMixin, TimestampMixin):
    """
    Cliente con cuenta corriente

    credit_limit = None significa sin límite.
    """
    __tablename__ = "clients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    # Datos personales
    name = Column(String(100), nullable=False, index=True)
    name_key = Column(String(100), nullable=False)  # Nombre normalizado para unicidad
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    note = Column(Text, nullable=True)

    # Crédito
    credit_limit = Column(Numeric(15, 2), nullable=True)

    # Estado
    active = Column(Boolean, nullable=False, default=True, index=True)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)

    # Auditoría
    created_by = Column(Uuid(as_uuid=True), nullable=False)
    updated_by = Column(Uuid(as_uuid=True), nullable=True)

    # Relationships
    entries = relationship("LedgerEntry", back_populates="client", lazy="raise")

    __table_args__ = (
        # Nombre único por dueño, incluyendo clientes dados de baja
        UniqueConstraint("owner_id", "name_key", name="uq_clients_owner_name_key"),
        CheckConstraint("credit_limit IS NULL OR credit_limit >= 0", name="ck_clients_credit_limit_non_negative"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name or ''}".strip()

    @property
    def has_credit_limit(self) -> bool:
        return self.credit_limit is not None


# ===== FUNCIONES AUXILIARES =====

def normalize_name(name: str) -> str:
    """
    Clave de unicidad del nombre: sin espacios extremos, espacios internos
    colapsados y sin distinguir mayúsculas.
    """
    return " ".join((name or "").split()).casefold()
