"""
Módulo Ledger - Movimientos de cuenta corriente

- Fiados (aumentan el saldo) y pagos (lo disminuyen), siempre con monto positivo
- Historial append-only: las correcciones son movimientos compensatorios
- Saldo derivado del historial en orden cronológico
- Evaluación de límite de crédito (sólo advertencia)
"""

from .models import LedgerEntry, EntryKind

__all__ = [
    "LedgerEntry",
    "EntryKind",
]
