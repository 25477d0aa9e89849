"""FastAPI dependencies: get_current_user_id, require_admin.

Usage in any protected router:
    from src.sv_gateway.auth.dependencies import get_current_user_id

    @router.get("/protected")
    async def protected(user_id: Annotated[str, Depends(get_current_user_id)]):
        ...

Only the token is checked here. Whether the user exists and is active is
decided by the service handling the request (e.g. order creation).
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.sv_common.enums import UserRole
from src.sv_common.errors import AdminRequiredError, InvalidCredentialsError
from src.sv_gateway.auth.jwt_handler import decode_token

bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """Raises HTTP 401 if the token is missing, invalid, or expired."""
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    try:
        role = UserRole(payload.get("role", UserRole.USER.value))
    except ValueError:
        raise _CREDENTIALS_EXCEPTION from None
    return Principal(user_id=str(payload["sub"]), role=role)


async def get_current_user_id(
    principal: Principal = Depends(get_current_principal),
) -> str:
    return principal.user_id


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Raises HTTP 403 (AppError code 1007) if the caller is not an admin."""
    if principal.role != UserRole.ADMIN:
        raise AdminRequiredError()
    return principal
