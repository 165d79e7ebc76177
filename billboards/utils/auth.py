"""
Utilitaires d'authentification / Authentication utilities.
Tokens JWT portant le scope entreprise / JWT tokens carrying the company scope.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from billboards.config import settings


def create_access_token(user_id: int, company_id: int, is_admin: bool = False) -> str:
    """Créer un access token JWT / Create a JWT access token."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "company_id": company_id,
        "is_admin": is_admin,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Décoder un token JWT / Decode a JWT token. Returns None if invalid."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
