import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import JWT_ALGORITHM, JWT_SECRET

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class Claims(BaseModel):
    """Identity asserted by a verified bearer token."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    role: str


def decode_token(token: str) -> Claims:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return Claims.model_validate(payload)
    except (JWTError, ValidationError) as e:
        logger.info("rejected bearer token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def _bearer_token(creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds and creds.scheme.lower() == "bearer":
        return creds.credentials
    return None


def _remember(request: Request, claims: Claims):
    request.state.user_id = claims.user_id
    request.state.user_role = claims.role


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Claims:
    token = _bearer_token(creds)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
        )

    claims = decode_token(token)
    _remember(request, claims)
    return claims


def get_optional_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Claims | None:
    """Anonymous callers pass; a token that is present must still be valid."""
    token = _bearer_token(creds)
    if not token:
        return None

    claims = decode_token(token)
    _remember(request, claims)
    return claims
