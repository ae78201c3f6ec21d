"""
Modelos SQLAlchemy para el ledger de cuenta corriente

LedgerEntry registra los movimientos de un cliente:
- CREDIT_SALE: venta fiada, aumenta el saldo
- PAYMENT: pago del cliente, disminuye el saldo

El monto siempre es positivo; el signo lo define el tipo.
Los movimientos son append-only: una anulación es un movimiento nuevo de
tipo opuesto que referencia al original (reverses_entry_id).

El id autoincremental es además el orden de inserción, usado para
desempatar movimientos con la misma fecha y hora.
"""

from cuentas.database.database import Base
from sqlalchemy import (
    Column, String, Date, Time, DateTime, ForeignKey, Numeric, Enum, Uuid,
    BigInteger, Integer, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from decimal import Decimal
from cuentas.common.mixins import TenantMixin
from cuentas.modules.clients.models import Client  # noqa: F401  registra el mapper referenciado por "client"
import enum


# ===== ENUMS =====

class EntryKind(enum.Enum):
    """Tipos de movimiento de cuenta corriente"""
    CREDIT_SALE = "credit_sale"  # Fiado (debe)
    PAYMENT = "payment"          # Pago (haber)

    @property
    def opposite(self) -> "EntryKind":
        return EntryKind.PAYMENT if self == EntryKind.CREDIT_SALE else EntryKind.CREDIT_SALE


# ===== MODELOS =====

class LedgerEntry(Base, TenantMixin):
    __tablename__ = "ledger_entries"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id"), nullable=False, index=True)
    kind = Column(Enum(EntryKind, name="ledger_entry_kind"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)  # Siempre el valor absoluto

    # Descripción del fiado o método de pago
    description_or_method = Column(String(255), nullable=True)

    # Momento de negocio (puede ser retroactivo, p.ej. saldo inicial)
    occurred_date = Column(Date, nullable=False, index=True)
    occurred_time = Column(Time, nullable=False)

    # Anulación por movimiento compensatorio
    reverses_entry_id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("ledger_entries.id"),
        nullable=True,
        unique=True
    )

    created_by = Column(Uuid(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    client = relationship("Client", back_populates="entries")
    reverses = relationship("LedgerEntry", remote_side=[id], foreign_keys=[reverses_entry_id])

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        Index("idx_ledger_entries_client_chrono", "client_id", "occurred_date", "occurred_time", "id"),
    )

    @property
    def signed_amount(self) -> Decimal:
        """Efecto sobre el saldo: + fiado, - pago"""
        if self.kind == EntryKind.CREDIT_SALE:
            return abs(self.amount)
        return -abs(self.amount)

    @property
    def description(self):
        return self.description_or_method if self.kind == EntryKind.CREDIT_SALE else None

    @property
    def payment_method(self):
        return self.description_or_method if self.kind == EntryKind.PAYMENT else None

    @property
    def is_reversal(self) -> bool:
        return self.reverses_entry_id is not None
