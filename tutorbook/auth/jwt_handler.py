"""Bearer token helpers.

Tokens are issued by the external identity provider that shares
JWT_SECRET_KEY with this service; the API only decodes them. Their `sub`
claim is the user id and `role` mirrors User.role.
"""

from datetime import datetime, timedelta, timezone

import jwt

from tutorbook.core import config


def create_access_token(subject: str, role: str, expires_minutes: int | None = None) -> str:
    """Sign a token the way the identity provider does. No route calls this."""
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": role,
        "exp": issued_at + timedelta(minutes=expire_minutes),
        "iat": issued_at,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
