"""
Módulo de Clientes - Cuenta corriente

Registro de clientes con cuenta corriente por dueño:
- Alta con saldo inicial opcional (deuda o a favor)
- Nombre único por dueño, sin distinguir mayúsculas ni espacios
- Límite de crédito opcional (vacío = sin límite)
- Baja lógica: el historial sigue consultable

Componentes:
- models.py: SQLAlchemy models
- schemas.py: Pydantic schemas para validación y serialización
- service.py: Lógica de negocio
- router.py: Endpoints REST API
- tests.py: Pruebas unitarias y de integración
"""

from .models import Client, normalize_name
from .schemas import (
    ClientCreate, ClientUpdate, ClientOut, ClientWithBalance, ClientSummary,
    BalanceStatus, OpeningKind
)

__all__ = [
    # Models
    "Client",
    "normalize_name",

    # Schemas
    "ClientCreate",
    "ClientUpdate",
    "ClientOut",
    "ClientWithBalance",
    "ClientSummary",
    "BalanceStatus",
    "OpeningKind",
]
