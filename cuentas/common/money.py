"""
Helpers de montos

Todos los importes se manejan como Decimal con 2 decimales; nunca float.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from cuentas.common.exceptions import ValidationError

CENT = Decimal('0.01')


def to_money(value, field: str = "amount") -> Decimal:
    """
    Convertir a Decimal redondeado a centavos (redondeo comercial).

    Raises:
        ValidationError: si el valor no es un número finito
    """
    if value is None:
        raise ValidationError("El monto es obligatorio", field=field)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("El monto no es un número válido", field=field)
    if not amount.is_finite():
        raise ValidationError("El monto no es un número válido", field=field)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def positive_amount(value, field: str = "amount") -> Decimal:
    amount = to_money(value, field)
    if amount <= 0:
        raise ValidationError("El monto debe ser mayor a 0", field=field)
    return amount


def optional_limit(value, field: str = "credit_limit") -> Optional[Decimal]:
    """Límite de crédito: None = sin límite; 0 es un límite válido."""
    if value is None:
        return None
    limit = to_money(value, field)
    if limit < 0:
        raise ValidationError("El límite de crédito no puede ser negativo", field=field)
    return limit
