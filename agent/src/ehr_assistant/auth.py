"""Bearer JWT authentication for the chat endpoints.

The EHR backend issues the JWTs; this service only verifies them with the
shared secret and reads the user claims. The raw token is kept so tools can
call the EHR API on the user's behalf.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ehr_assistant.config import JWT_ALGORITHM, JWT_SECRET
from ehr_assistant.permissions import UserContext

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    user: UserContext
    token: str


def decode_token(token: str, secret: str = JWT_SECRET, algorithm: str = JWT_ALGORITHM) -> UserContext:
    """Verify a JWT and return the user it identifies.

    Raises:
        ValueError: If the token is invalid, expired or missing claims.
    """
    if not secret:
        raise ValueError("JWT_SECRET not configured")
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as exc:
        raise ValueError(str(exc)) from exc

    if not payload.get("sub"):
        raise ValueError("Token has no subject")

    return UserContext(
        user_id=str(payload["sub"]),
        email=payload.get("email", ""),
        account_type=payload.get("accountType", ""),
        group_id=payload.get("groupId"),
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> AuthenticatedUser:
    """FastAPI dependency: require a valid bearer token."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        user = decode_token(credentials.credentials)
    except ValueError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    return AuthenticatedUser(user=user, token=credentials.credentials)
