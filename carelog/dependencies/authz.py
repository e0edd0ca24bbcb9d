from enum import Enum
from typing import Iterable
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from carelog.core.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


class RoleName(str, Enum):
    CAREGIVER = "caregiver"
    FAMILY_ADMIN = "family_admin"
    FAMILY_MEMBER = "family_member"


FAMILY_ROLES = (RoleName.FAMILY_ADMIN, RoleName.FAMILY_MEMBER)


class Principal:
    """
    The authenticated caller, as asserted by the auth service's token.

    - id:   caregiver id (caregivers) or user id (family)
    - role: one of RoleName
    - name: display name, recorded in audit entries
    """

    def __init__(self, id: UUID, role: RoleName, name: str | None = None):
        self.id = id
        self.role = role
        self.name = name


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """
    Dependency to resolve the caller from a JWT bearer token.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        principal_id = UUID(str(payload.get("sub")))
        role = RoleName(payload.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    return Principal(id=principal_id, role=role, name=payload.get("name"))


def require_roles(required_roles: Iterable[RoleName]):
    """
    Dependency factory for role-based access.

    Usage:

    @router.post("/{care_log_id}/submit")
    def submit(principal: Principal = Depends(require_roles([RoleName.CAREGIVER]))):
        ...

    Returns the current principal if their role is one of the required roles.
    """

    required = {r.value if isinstance(r, RoleName) else str(r) for r in required_roles}

    def dependency(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.role.value not in required:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions.",
            )
        return principal

    return dependency
