"""Bearer-token authentication dependencies.

``require_principal`` resolves any logged-in caller; ``require_staff``
additionally demands the staff role tag.  The verifier itself lives on
``app.state.identity``.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.services.identity import IdentityVerifier, InvalidCredentialError, Principal

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


async def optional_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> Principal | None:
    """Return the caller's principal, or *None* when no token was sent."""
    if credentials is None or not credentials.credentials:
        return None

    verifier: IdentityVerifier | None = getattr(request.app.state, "identity", None)
    if verifier is None:
        logger.error("auth.verifier_not_configured")
        raise HTTPException(status_code=503, detail="Authentication is not configured.")

    try:
        return verifier.verify(credentials.credentials)
    except InvalidCredentialError as exc:
        logger.warning(
            "auth.invalid_token",
            path=request.url.path,
            reason=str(exc),
        )
        raise HTTPException(
            status_code=401,
            detail="Unauthorized. Please log in to continue.",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


async def require_principal(
    principal: Principal | None = Depends(optional_principal),
) -> Principal:
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized. Please log in to continue.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


async def require_staff(
    request: Request,
    principal: Principal = Depends(require_principal),
) -> Principal:
    if not principal.is_staff:
        logger.warning("auth.staff_required", path=request.url.path, principal_id=principal.principal_id)
        raise HTTPException(status_code=403, detail="Forbidden. Staff access only.")
    return principal
