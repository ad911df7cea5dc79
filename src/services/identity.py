"""Bearer-token identity verification.

Session issuance lives elsewhere; this module only checks an HS256 token
signed with the shared secret and turns its claims into a
:class:`Principal`.  A principal is staff when its email belongs to one of
the configured staff domains.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Protocol

import jwt
import structlog

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

STAFF_ROLE: Final[str] = "staff"
CITIZEN_ROLE: Final[str] = "citizen"


class InvalidCredentialError(Exception):
    """The presented credential is missing, expired, or not ours."""


@dataclass(slots=True, frozen=True)
class Principal:
    principal_id: str
    email: str | None = None
    role_tags: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_staff(self) -> bool:
        return STAFF_ROLE in self.role_tags


class IdentityVerifier(Protocol):
    def verify(self, credential: str) -> Principal: ...


def is_staff_email(email: str | None, staff_domains: list[str]) -> bool:
    if not email or "@" not in email:
        return False
    domain = email.rsplit("@", 1)[1].strip().lower()
    return domain in {d.strip().lower() for d in staff_domains if d.strip()}


class JWTIdentityVerifier:
    """Verify PyJWT tokens carrying ``sub`` and optionally ``email``.

    Parameters
    ----------
    secret:
        Shared signing secret.
    staff_domains:
        Email domains whose holders are tagged ``staff``.
    algorithm:
        Signing algorithm accepted on decode.
    """

    __slots__ = ("_algorithm", "_secret", "_staff_domains")

    def __init__(self, secret: str, staff_domains: list[str], algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._staff_domains = staff_domains

    def verify(self, credential: str) -> Principal:
        try:
            payload = jwt.decode(
                credential,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.info("identity.token_expired")
            raise InvalidCredentialError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("identity.token_invalid", error=type(exc).__name__)
            raise InvalidCredentialError("Invalid token") from exc

        subject = str(payload["sub"]).strip()
        if not subject:
            raise InvalidCredentialError("Token has an empty subject")

        email = payload.get("email")
        roles = {CITIZEN_ROLE}
        if is_staff_email(email, self._staff_domains):
            roles.add(STAFF_ROLE)
        return Principal(principal_id=subject, email=email, role_tags=frozenset(roles))
