"""JWT access token validation (ES256).

Tokens are issued by the identity service; this service only verifies
them.  The verification key comes from AUTH_PUBLIC_KEY (PEM).  When it is
unset (dev/test) an ephemeral EC key pair is generated on import, and
``create_access_token`` can mint tokens against it for local use and tests.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from course_access.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "identity-service"
AUDIENCE = "course-access"
ACCESS_TOKEN_TTL_MIN = 15

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------

if SETTINGS.auth_public_key:
    _private_key: ec.EllipticCurvePrivateKey | None = None
    _public_key = serialization.load_pem_public_key(
        SETTINGS.auth_public_key.encode()
    )
    if not isinstance(_public_key, ec.EllipticCurvePublicKey):
        raise ValueError("AUTH_PUBLIC_KEY must be an EC (P-256) public key")
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Mint a token signed with the ephemeral dev key.

    Only available when no AUTH_PUBLIC_KEY is configured; in that case the
    identity service holds the private key and this raises RuntimeError.
    """
    if _private_key is None:
        raise RuntimeError("token minting is only available with the dev key")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Validates exp, iss, and aud automatically via PyJWT options.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
