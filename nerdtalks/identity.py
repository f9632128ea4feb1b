"""Bearer credential verification.

Tokens are JWTs issued by the identity provider. They are checked either
against a shared HMAC secret or against the provider's published signing keys
(JWKS), and decoded into a :class:`Claim`.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import jwt
from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Claim:
    """Decoded identity of the requester; lives for one request only"""
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    claims: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: dict):
        uid = payload.get("uid") or payload.get("user_id") or payload.get("sub")
        if not uid:
            raise InvalidToken("Token has no subject.")
        return cls(
            uid=str(uid),
            email=payload.get("email"),
            name=payload.get("name"),
            claims=dict(payload),
        )


class InvalidToken(Exception):
    """The credential is malformed, expired or not signed by the provider"""


class VerifierUnavailable(Exception):
    """The provider's signing keys could not be fetched"""


class JWTIdentityVerifier:
    def __init__(self, secret=None, algorithms=("HS256",), audience=None, issuer=None,
                 jwks_url=None, timeout: float = 10.0):
        if not secret and not jwks_url:
            raise ValueError("Either a JWT secret or a JWKS url is required")
        self.secret = secret
        self.algorithms = list(algorithms)
        self.audience = audience
        self.issuer = issuer
        self.jwks_client = jwt.PyJWKClient(jwks_url, timeout=timeout) if jwks_url else None

    @classmethod
    def from_settings(cls, settings):
        return cls(
            secret=settings.jwt_secret,
            algorithms=settings.jwt_algorithms,
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            jwks_url=settings.jwks_url,
            timeout=settings.verifier_timeout_s,
        )

    async def verify(self, token: str) -> Claim:
        """Verify JWT token and return the decoded claim"""
        if self.jwks_client is not None:
            # Key lookup may hit the network, keep it off the event loop
            return await run_in_threadpool(self._verify_with_jwks, token)
        return self._decode(token, self.secret)

    def _verify_with_jwks(self, token: str) -> Claim:
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
        except jwt.PyJWKClientConnectionError as exc:
            logger.error("Could not fetch signing keys: %s", exc)
            raise VerifierUnavailable("Identity provider unavailable") from exc
        except jwt.PyJWTError as exc:
            raise InvalidToken(str(exc)) from exc
        return self._decode(token, signing_key.key)

    def _decode(self, token: str, key) -> Claim:
        options = {"verify_aud": self.audience is not None}
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options=options,
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token has expired.") from exc
        except jwt.PyJWTError as exc:
            raise InvalidToken("Invalid token.") from exc
        return Claim.from_payload(payload)
