import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """Process-wide configuration, read once at startup"""
    mongodb_uri: str = "mongodb://localhost:27017"
    database_name: str = "nerdtalks"
    port: int = 3000

    # Identity verification
    jwt_secret: Optional[str] = None
    jwt_algorithms: List[str] = field(default_factory=lambda: ["HS256"])
    jwt_audience: Optional[str] = None
    jwt_issuer: Optional[str] = None
    jwks_url: Optional[str] = None

    # Bounded completion for external calls
    store_timeout_ms: int = 5000
    verifier_timeout_s: float = 10.0

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Build settings from the environment (and a .env file if present)"""
        load_dotenv()
        return cls(
            mongodb_uri=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
            database_name=os.getenv("DATABASE_NAME", "nerdtalks"),
            port=int(os.getenv("PORT", "3000")),
            jwt_secret=os.getenv("JWT_SECRET") or None,
            jwt_algorithms=_split(os.getenv("JWT_ALGORITHMS", "HS256")),
            jwt_audience=os.getenv("JWT_AUDIENCE") or None,
            jwt_issuer=os.getenv("JWT_ISSUER") or None,
            jwks_url=os.getenv("JWKS_URL") or None,
            store_timeout_ms=int(os.getenv("STORE_TIMEOUT_MS", "5000")),
            verifier_timeout_s=float(os.getenv("VERIFIER_TIMEOUT_S", "10")),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
