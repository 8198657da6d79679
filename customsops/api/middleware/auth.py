"""
User identity from Azure App Service authentication (Easy Auth).

App Service validates the sign-in and forwards the principal as request
headers; this module only reads them. Nothing here verifies tokens, so the
API must only be reachable through App Service in production.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends, HTTPException, Request, status

from customsops.config import ROLE_MAP_RAW
from customsops.observability.logging import get_logger

logger = get_logger(__name__)

PRINCIPAL_NAME_HEADER = "X-MS-CLIENT-PRINCIPAL-NAME"
PRINCIPAL_ID_HEADER = "X-MS-CLIENT-PRINCIPAL-ID"
PRINCIPAL_HEADER = "X-MS-CLIENT-PRINCIPAL"

DEFAULT_AUTHENTICATED_ROLES = ("authenticated", "user")

_EMAIL_CLAIMS = (
    "emails",
    "email",
    "preferred_username",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress",
)
_ROLE_CLAIMS = ("roles", "http://schemas.microsoft.com/ws/2008/06/identity/claims/role")


@dataclass
class AuthenticatedUser:
    """Signed-in operator as reported by Easy Auth."""

    id: str
    email: str
    name: str
    roles: list[str] = field(default_factory=list)

    def has_role(self, role: str) -> bool:
        return has_role(self, role)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}

    def __str__(self) -> str:
        return f"User({self.id}, {self.email})"


def parse_role_map(raw: str) -> dict[str, list[str]]:
    """
    Parse ``"a@x.com:admin|manager,b@x.com:manager"`` into an email -> roles map.

    Emails are lower-cased; malformed items are skipped with a warning.
    """
    role_map: dict[str, list[str]] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        email, sep, roles = item.partition(":")
        if not sep or not email.strip():
            logger.warning("Ignoring malformed role map entry: %r", item)
            continue
        role_map[email.strip().lower()] = [r.strip() for r in roles.split("|") if r.strip()]
    return role_map


ROLE_MAP = parse_role_map(ROLE_MAP_RAW)


def _decode_principal(encoded: str) -> dict[str, Any]:
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        data = json.loads(base64.b64decode(padded))
    except (binascii.Error, ValueError) as e:
        logger.warning("Unreadable %s header: %s", PRINCIPAL_HEADER, e)
        return {}
    return data if isinstance(data, dict) else {}


def _claims(principal: dict[str, Any]) -> list[tuple[str, str]]:
    result = []
    for claim in principal.get("claims") or []:
        if isinstance(claim, dict) and claim.get("typ") and claim.get("val") is not None:
            result.append((str(claim["typ"]), str(claim["val"])))
    return result


def _first_claim(claims: list[tuple[str, str]], types: Iterable[str]) -> str:
    for wanted in types:
        for typ, val in claims:
            if typ == wanted and val:
                return val
    return ""


def resolve_roles(email: str, extra: Iterable[str] = (), role_map: dict[str, list[str]] | None = None) -> list[str]:
    """Default roles, then roles from the claims, then the configured map. No duplicates."""
    role_map = ROLE_MAP if role_map is None else role_map
    roles: list[str] = []
    for role in (*DEFAULT_AUTHENTICATED_ROLES, *extra, *role_map.get(email.lower(), [])):
        if role and role not in roles:
            roles.append(role)
    return roles


def user_from_headers(headers: Any, role_map: dict[str, list[str]] | None = None) -> AuthenticatedUser | None:
    """Build the user from Easy Auth headers, or None when the request is anonymous."""
    principal_name = headers.get(PRINCIPAL_NAME_HEADER, "")
    principal_id = headers.get(PRINCIPAL_ID_HEADER, "")
    encoded = headers.get(PRINCIPAL_HEADER, "")

    claims = _claims(_decode_principal(encoded)) if encoded else []
    if not principal_name and not principal_id and not claims:
        return None

    email = _first_claim(claims, _EMAIL_CLAIMS) or (principal_name if "@" in principal_name else "")
    name = _first_claim(claims, ("name",)) or principal_name or email
    claim_roles = [val for typ, val in claims if typ in _ROLE_CLAIMS]

    return AuthenticatedUser(
        id=principal_id,
        email=email,
        name=name,
        roles=resolve_roles(email, claim_roles, role_map),
    )


def has_role(user: AuthenticatedUser | None, role: str) -> bool:
    """Role check used by routes. ``public`` always passes; names are case-insensitive."""
    if not role:
        return False
    if role == "public":
        return True
    if user is None:
        return False
    if role == "authenticated":
        return True
    return role.lower() in (r.lower() for r in user.roles)


async def get_optional_user(request: Request) -> AuthenticatedUser | None:
    """
    FastAPI dependency for optional authentication.

    Returns None for anonymous requests (local development without Easy Auth).
    """
    return user_from_headers(request.headers)


async def get_current_user(
    user: AuthenticatedUser | None = Depends(get_optional_user),
) -> AuthenticatedUser:
    """FastAPI dependency that rejects anonymous requests with 401."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_role(*allowed: str) -> Callable[..., Any]:
    """
    Dependency factory: pass when the user holds any of ``allowed``.

    Usage:
        @router.delete("/thing", dependencies=[Depends(require_role("admin"))])
    """

    async def dependency(
        user: AuthenticatedUser | None = Depends(get_optional_user),
    ) -> AuthenticatedUser | None:
        if not allowed or any(has_role(user, role) for role in allowed):
            return user
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
            )
        logger.warning("User %s denied, needs one of %s", user, allowed)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    return dependency
