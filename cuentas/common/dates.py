"""
Fecha y hora de negocio.

Los movimientos se fechan con la hora local del comercio (no la del
servidor ni UTC), configurada en settings.BUSINESS_TIMEZONE.
"""
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from cuentas.core.config import settings


def business_now() -> datetime:
    return datetime.now(ZoneInfo(settings.BUSINESS_TIMEZONE))


def business_today() -> date:
    return business_now().date()


def business_time() -> time:
    """Hora actual del comercio, con precisión de segundos."""
    return business_now().time().replace(microsecond=0, tzinfo=None)
