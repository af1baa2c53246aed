"""
Mutabaah Service - FastAPI Dependencies

Shared dependencies for authentication, database sessions, and role checks.

This module provides dependency injection for:
1. Database sessions and the session factory
2. Current employee authentication
3. Role-based access control
"""

from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.models.employee import Employee, EmployeeRole
from app.utils.error_handling import (
    AuthenticationException,
    AuthorizationException,
    InsufficientPermissionsException,
    TokenInvalidException,
)
from app.utils.security import verify_access_token


# HTTP Bearer token security
security = HTTPBearer(auto_error=False)

# Cookies the identity service may set
TOKEN_COOKIES = ("access_token", "session")


def _token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials:
        return credentials.credentials
    for name in TOKEN_COOKIES:
        token = request.cookies.get(name)
        if token:
            return token[7:] if token.startswith("Bearer ") else token
    return None


async def get_current_employee(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> Employee:
    """
    Get the current authenticated employee from the JWT token.

    Token can be provided via:
    1. Authorization: Bearer <token> header
    2. access_token or session cookie

    Raises:
        AuthenticationException: If the token is missing, invalid, or
            names an unknown employee
    """
    token = _token_from_request(request, credentials)
    if not token:
        raise AuthenticationException("Not authenticated")

    payload = verify_access_token(token)
    if not payload:
        raise TokenInvalidException("Invalid or expired token")

    employee_id = payload.get("sub")
    if not employee_id:
        raise TokenInvalidException("Invalid token payload")

    employee = await db.get(Employee, str(employee_id))
    if not employee:
        raise AuthenticationException("Employee not found")

    if not employee.is_active:
        raise AuthorizationException("Employee account is deactivated")

    return employee


def require_role(allowed_roles: List[EmployeeRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin-only")
        async def admin_endpoint(employee: Employee = Depends(require_role([EmployeeRole.ADMIN]))):
            ...
    """
    async def role_checker(
        current_employee: Employee = Depends(get_current_employee),
    ) -> Employee:
        if current_employee.role not in allowed_roles:
            raise InsufficientPermissionsException(
                required_permission=" or ".join(r.value for r in allowed_roles),
                user_role=current_employee.role.value,
            )
        return current_employee

    return role_checker


def require_admin():
    """Require admin or super admin role."""
    return require_role([EmployeeRole.ADMIN, EmployeeRole.SUPER_ADMIN])
