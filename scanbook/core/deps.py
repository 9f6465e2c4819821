"""FastAPI dependencies for authentication/authorization."""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from scanbook.core.security import Identity, TokenDecodeError, verify_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def _resolve_identity(credentials: HTTPAuthorizationCredentials | None) -> Identity | None:
    if credentials is None:
        return None
    try:
        return await verify_access_token(credentials.credentials)
    except TokenDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
        ) from exc


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> Identity:
    identity = await _resolve_identity(credentials)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized to access this route")
    return identity


async def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> Identity | None:
    return await _resolve_identity(credentials)


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required.",
        )
    return identity
