"""
Errores de dominio de la cuenta corriente.

Jerarquía:
    DomainError (base, es un HTTPException)
    ├── ValidationError     422 - dato faltante o inválido (monto <= 0, límite negativo, ...)
    ├── NotFoundError       404 - el cliente o movimiento no existe
    ├── ConflictError       409 - nombre duplicado, movimiento ya anulado
    └── AuthorizationError  403 - recurso de otro dueño o permiso faltante

Al heredar de HTTPException los servicios pueden lanzarlos directamente y
FastAPI los convierte en respuestas sin capturas intermedias. El handler
registrado en main.py agrega `error_code` y `field` al cuerpo.

Los errores de infraestructura (SQLAlchemyError) NO se envuelven aquí:
se propagan tal cual al llamador.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainError(HTTPException):
    default_status_code: int = status.HTTP_400_BAD_REQUEST
    default_error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, error_code: Optional[str] = None):
        self.message = message
        self.field = field
        self.error_code = error_code or self.default_error_code
        super().__init__(status_code=self.default_status_code, detail=message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"detail": self.message, "error_code": self.error_code}
        if self.field:
            result["field"] = self.field
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ValidationError(DomainError):
    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_error_code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    default_status_code = status.HTTP_404_NOT_FOUND
    default_error_code = "NOT_FOUND"


class ConflictError(DomainError):
    default_status_code = status.HTTP_409_CONFLICT
    default_error_code = "CONFLICT"


class AuthorizationError(DomainError):
    default_status_code = status.HTTP_403_FORBIDDEN
    default_error_code = "FORBIDDEN"
