"""
Tests de resolución del contexto de autenticación (dueño efectivo + permisos)
"""

import jwt
import pytest
from datetime import timedelta
from uuid import uuid4

from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from cuentas.common.exceptions import AuthorizationError
from cuentas.core.config import settings
from cuentas.modules.auth.dependencies import AuthDependencies
from cuentas.modules.auth.schemas import AuthContext, Permission, UserRole
from cuentas.modules.auth.utils import create_access_token, verify_token


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestAuthContext:

    def test_owner_token(self):
        owner = uuid4()
        context = AuthDependencies.get_auth_context(bearer(create_access_token(owner, owner)))

        assert context.owner_id == owner
        assert context.user_id == owner
        assert context.is_owner is True
        assert context.has_permission(Permission.VOID_ENTRIES) is True

    def test_employee_token_keeps_known_permissions(self):
        owner, employee = uuid4(), uuid4()
        token = create_access_token(
            employee, owner, role="employee", permissions=["record_entries", "borrar_todo"]
        )

        context = AuthDependencies.get_auth_context(bearer(token))

        assert context.role == UserRole.EMPLOYEE
        assert context.owner_id == owner
        assert context.permissions == [Permission.RECORD_ENTRIES]
        assert context.has_permission(Permission.RECORD_ENTRIES) is True
        assert context.has_permission(Permission.VIEW_REPORTS) is False

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc_info:
            AuthDependencies.get_auth_context(None)
        assert exc_info.value.status_code == 401

    def test_expired_token(self):
        owner = uuid4()
        token = create_access_token(owner, owner, expires_delta=timedelta(seconds=-5))

        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)
        assert exc_info.value.status_code == 401

    def test_owner_token_for_another_account_rejected(self):
        token = create_access_token(uuid4(), uuid4(), role="owner")

        with pytest.raises(HTTPException) as exc_info:
            AuthDependencies.get_auth_context(bearer(token))
        assert exc_info.value.status_code == 401

    def test_token_without_owner_rejected(self):
        token = jwt.encode({"sub": str(uuid4())}, settings.APP_SECRET_STRING, algorithm=settings.ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            AuthDependencies.get_auth_context(bearer(token))
        assert exc_info.value.status_code == 401


class TestRequirePermission:

    def test_missing_permission_forbidden(self):
        checker = AuthDependencies.require_permission(Permission.VOID_ENTRIES)
        context = AuthContext(user_id=uuid4(), owner_id=uuid4(), role=UserRole.EMPLOYEE,
                              permissions=[Permission.RECORD_ENTRIES])

        with pytest.raises(AuthorizationError) as exc_info:
            checker(context)
        assert exc_info.value.status_code == 403
        assert exc_info.value.error_code == "PERMISSION_REQUIRED"

    def test_granted_permission_returns_context(self):
        checker = AuthDependencies.require_permission(Permission.VIEW_REPORTS)
        context = AuthContext(user_id=uuid4(), owner_id=uuid4(), role=UserRole.EMPLOYEE,
                              permissions=[Permission.VIEW_REPORTS])

        assert checker(context) is context
