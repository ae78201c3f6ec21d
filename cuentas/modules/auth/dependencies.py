"""
Dependencias de autenticación para FastAPI.

La resolución del "usuario efectivo" (dueño vs. empleado) la hace el
servicio de identidad al emitir el token; aquí sólo se verifica y se
convierte en un AuthContext explícito que viaja como parámetro.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from cuentas.common.exceptions import AuthorizationError
from cuentas.modules.auth.schemas import AuthContext, Permission, UserRole
from cuentas.modules.auth.utils import verify_token

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_auth_context(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
    ) -> AuthContext:
        """
        Obtener el contexto (dueño efectivo + operador) desde el token JWT.
        Rechaza llamadores sin token o sin dueño resuelto.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No se pudieron validar las credenciales",
            headers={"WWW-Authenticate": "Bearer"},
        )

        if credentials is None:
            raise credentials_exception

        payload = verify_token(credentials.credentials)

        user_id = payload.get("sub")
        owner_id = payload.get("owner_id")
        if not user_id or not owner_id:
            raise credentials_exception

        try:
            role = UserRole(payload.get("role", UserRole.OWNER.value))
            user_uuid = UUID(user_id)
            owner_uuid = UUID(owner_id)
        except ValueError:
            raise credentials_exception

        if role == UserRole.OWNER and user_uuid != owner_uuid:
            # Un dueño sólo opera sobre su propia cuenta
            raise credentials_exception

        known = {p.value for p in Permission}
        permissions = [Permission(p) for p in payload.get("permissions") or [] if p in known]

        return AuthContext(
            user_id=user_uuid,
            owner_id=owner_uuid,
            role=role,
            permissions=permissions
        )

    @staticmethod
    def require_permission(permission: Permission):
        """
        Dependencia para requerir un permiso. El dueño los tiene todos.
        """
        def permission_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if not auth_context.has_permission(permission):
                logger.warning(
                    f"User {auth_context.user_id} denied '{permission.value}' on owner {auth_context.owner_id}"
                )
                raise AuthorizationError(
                    f"No tienes permiso para esta acción ({permission.value})",
                    error_code="PERMISSION_REQUIRED"
                )
            return auth_context
        return permission_checker


# Instancias de dependencias
get_auth_context = AuthDependencies.get_auth_context
require_permission = AuthDependencies.require_permission
