"""Utilities for issuing and decoding application JWTs."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Mapping

import jwt

ALGORITHM = "HS256"


class JwtTokenIssuer:
    """Signs bounded-lifetime bearer tokens with a process-wide secret."""

    def __init__(self, secret: str, issuer: str) -> None:
        self._secret = secret
        self._issuer = issuer

    def issue(self, claims: Mapping[str, Any], ttl: timedelta) -> str:
        """Create a signed JWT asserting the given identity claims.

        Parameters
        ----------
        claims:
            Identity claims to embed, typically ``id``, ``email`` and ``role``.
        ttl:
            Validity window measured from the moment of issuance.

        Returns
        -------
        str
            The encoded JWT string.
        """
        now = int(time.time())
        payload: dict[str, Any] = {
            **claims,
            "iss": self._issuer,
            "iat": now,
            "exp": now + int(ttl.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str, issuer: str) -> dict[str, Any]:
    """Decode and verify a JWT returning its payload.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, or signed by another issuer.
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[ALGORITHM],
        issuer=issuer,
        options={"require": ["exp", "iat", "iss"]},
    )
