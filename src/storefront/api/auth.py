"""Bearer-token principal resolution.

Tokens are issued by the account service. The API only decodes them and
trusts the ``id`` and ``role`` claims they carry.
"""

from dataclasses import dataclass

from fastapi import Depends, Header
from jose import JWTError, jwt

from storefront.config import jwt_secret
from storefront.errors import AuthorizationError
from storefront.identity.user import Role

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str = Role.CUSTOMER.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def issue_token(user_id, role=Role.CUSTOMER.value, **claims) -> str:
    """Encode a token the way the account service does. Used by tooling and tests."""
    return jwt.encode({"id": str(user_id), "role": role, **claims}, jwt_secret(), algorithm=JWT_ALGORITHM)


def get_principal(authorization: str | None = Header(default=None)) -> Principal:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthorizationError("You are not authenticated!", status_code=401)

    token = authorization.split(" ", 1)[1].strip()
    try:
        claims = jwt.decode(token, jwt_secret(), algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise AuthorizationError("Token is not valid!") from None

    if not claims.get("id"):
        raise AuthorizationError("Token is not valid!")
    return Principal(user_id=str(claims["id"]), role=claims.get("role") or Role.CUSTOMER.value)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise AuthorizationError("Admin access only!")
    return principal
