import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.routing import APIRoute
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import Forbidden, Internal, Unauthenticated
from .identity import Claim, InvalidToken, VerifierUnavailable

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

##########
# Security
##########
# Yields None for a missing header, a non-Bearer scheme or an empty token
bearer_scheme = HTTPBearer(auto_error=False)


##########
# Credentials
##########
async def authenticate(credentials: Optional[HTTPAuthorizationCredentials], verifier) -> Claim:
    """Resolve a Bearer credential into a verified claim"""
    if not credentials:
        raise Unauthenticated("Unauthorized access.")

    try:
        return await verifier.verify(credentials.credentials)
    except InvalidToken as exc:
        logger.warning("Rejected bearer token: %s", exc)
        raise Forbidden(f"Forbidden access: {exc}") from exc
    except VerifierUnavailable as exc:
        raise Internal("Could not verify credentials.") from exc


def acting_voter(claim: Claim) -> str:
    """Voter identifier for set membership, taken from the verified identity only"""
    return claim.email or claim.uid


async def is_admin(db, uid: str) -> bool:
    user = await db.users.find_one({"uid": uid}, {"role": 1})
    return bool(user) and user.get("role") == ADMIN_ROLE


##########
# Dependencies
##########
async def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Claim:
    """Return the verified claim or raise 401/403"""
    claim = await authenticate(credentials, request.app.state.verifier)
    request.state.claim = claim
    return claim


async def require_admin(request: Request, claim: Claim = Depends(require_user)) -> Claim:
    """Return the verified claim of a stored admin user or raise 403"""
    if not await is_admin(request.app.state.db, claim.uid):
        logger.warning("User %s denied admin access to %s", claim.uid, request.url.path)
        raise Forbidden("Forbidden access: admin only.")
    return claim


##########
# Routing
##########
def requires_credentials(dependant) -> bool:
    return any(dep.call is require_user or requires_credentials(dep) for dep in dependant.dependencies)


class GatedRoute(APIRoute):
    """Rejects anonymous requests to protected routes before the body is decoded.

    FastAPI reads and validates the request body ahead of the route's
    dependencies, so without this an anonymous request carrying malformed JSON
    would get a 400 instead of a 401. Only the presence of a Bearer credential
    is checked here; verification still happens once, in `require_user`.
    """

    def get_route_handler(self):
        handler = super().get_route_handler()
        if not requires_credentials(self.dependant):
            return handler

        async def gated_handler(request: Request):
            if await bearer_scheme(request) is None:
                raise Unauthenticated("Unauthorized access.")
            return await handler(request)

        return gated_handler
