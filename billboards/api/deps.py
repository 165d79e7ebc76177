"""
Dépendances d'authentification et de scope / Authentication and scoping dependencies.
Injectées dans les routes via Depends().
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import async_sessionmaker

from billboards.database import async_session
from billboards.utils.auth import decode_token

security = HTTPBearer()


@dataclass
class CurrentUser:
    user_id: int
    company_id: int
    is_admin: bool = False

    @property
    def actor(self) -> str:
        return f"user:{self.user_id}"


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Extraire l'utilisateur et son entreprise du JWT / Extract user and company from the JWT."""
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access" or payload.get("company_id") is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    return CurrentUser(
        user_id=int(payload["sub"]),
        company_id=int(payload["company_id"]),
        is_admin=bool(payload.get("is_admin", False)),
    )


async def get_company_id(user: CurrentUser = Depends(get_current_user)) -> int:
    return user.company_id


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def get_session_factory() -> async_sessionmaker:
    """Fabrique de sessions des taches de fond / Session factory for background passes."""
    return async_session
