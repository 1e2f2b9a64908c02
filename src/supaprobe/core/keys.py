"""
API key inspection

Supabase keys are JWTs whose ``role`` claim tells the tier apart. They are
decoded without signature verification: the harness only reports on them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import jwt


@dataclass
class KeyInfo:
    """What can be read from an API key without the project secret"""
    role: Optional[str] = None
    project_ref: Optional[str] = None
    issuer: Optional[str] = None
    expires_at: Optional[datetime] = None
    is_jwt: bool = False

    @property
    def expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= self.expires_at

    @property
    def tier(self) -> str:
        if self.role == "service_role":
            return "service"
        if self.role == "anon":
            return "anon"
        return "unknown"


def describe_key(api_key: str) -> KeyInfo:
    """Decode the claims of an API key; opaque keys yield an empty KeyInfo"""
    if not api_key:
        return KeyInfo()

    try:
        claims = jwt.decode(api_key, options={"verify_signature": False})
    except jwt.PyJWTError:
        # New-style publishable/secret keys are not JWTs
        if api_key.startswith("sb_secret_"):
            return KeyInfo(role="service_role")
        if api_key.startswith("sb_publishable_"):
            return KeyInfo(role="anon")
        return KeyInfo()

    expires_at = None
    if isinstance(claims.get("exp"), (int, float)):
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)

    return KeyInfo(
        role=claims.get("role"),
        project_ref=claims.get("ref"),
        issuer=claims.get("iss"),
        expires_at=expires_at,
        is_jwt=True,
    )


def mask_secret(value: str, visible: int = 10) -> str:
    """Show the first characters of a secret, hide the rest"""
    if not value:
        return "<not set>"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}...({len(value)} chars)"


def token_subject(access_token: str) -> Optional[str]:
    """User id carried by a session access token"""
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    return claims.get("sub")
