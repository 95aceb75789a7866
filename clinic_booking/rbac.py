from fastapi import Depends, HTTPException, status

from .security import Claims, get_current_user

ADMIN = "ADMIN"


def require_role(claims: Claims, allowed_roles: list[str]):
    allowed = {r.upper() for r in allowed_roles}

    if (claims.role or "").upper() not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access forbidden for this role",
        )


def require_admin(claims: Claims = Depends(get_current_user)) -> Claims:
    require_role(claims, [ADMIN])
    return claims
