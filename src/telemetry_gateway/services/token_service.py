"""Device bearer token issuance and verification"""
import hmac
import logging
import re
import time
from typing import Callable, Optional

import jwt

from telemetry_gateway.utils.errors import (
    InvalidCredentials,
    InvalidOrExpiredToken,
    MissingCredentials,
    MissingToken,
)

logger = logging.getLogger(__name__)

TOKEN_TYPE = 'device'
ALGORITHM = 'HS256'

_DURATION_UNITS = {'': 1, 's': 1, 'm': 60, 'h': 3600, 'd': 86400}
_DURATION_RE = re.compile(r'^\s*(\d+)\s*([smhd]?)\s*$')


def parse_duration(value: str) -> int:
    """
    Parse a lifetime such as '900', '900s', '15m', '1h' or '1d' into seconds

    Raises:
        ValueError: If the value is not a positive duration
    """
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


class IssuedToken:
    """A freshly signed access token"""

    def __init__(self, token: str, expires_in: int):
        self.token = token
        self.expires_in = expires_in

    def to_dict(self):
        return {
            'token': self.token,
            'expiresIn': self.expires_in,
            'tokenType': 'Bearer'
        }


class TokenClaims:
    """Identity recovered from a verified token"""

    def __init__(self, device_id: str, expires_at: int):
        self.device_id = device_id
        self.expires_at = expires_at


class TokenService:
    """
    Issues and verifies short-lived HS256 tokens bound to a device id.

    Device secrets are not stored anywhere: the expected secret for a
    device is the configured prefix followed by the device id, so rotating
    the prefix rotates every device credential at once.

    Verification is a pure signature and expiry check with no store lookup.
    There is no revocation; expiry is the only way a token stops working.
    """

    def __init__(self,
                 secret_key: str,
                 expires_in: int = 900,
                 device_secret_prefix: str = '',
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            secret_key: HMAC signing key
            expires_in: Token lifetime in seconds
            device_secret_prefix: Prefix every device secret starts with
            clock: Returns the current Unix time; defaults to time.time
        """
        if not secret_key:
            raise ValueError("A signing key is required")
        self._secret_key = secret_key
        self.expires_in = expires_in
        self._device_secret_prefix = device_secret_prefix
        self._clock = clock or time.time

    def check_device_secret(self, device_id: str, device_secret: str) -> bool:
        """Compare a presented secret with the derived one in constant time"""
        expected = (self._device_secret_prefix + device_id).encode('utf-8')
        return hmac.compare_digest(expected, device_secret.encode('utf-8'))

    def issue(self, device_id: str, device_secret: str) -> IssuedToken:
        """
        Issue a token for a device after checking its secret

        Raises:
            MissingCredentials: If either field is empty
            InvalidCredentials: If the secret does not match
        """
        if not isinstance(device_id, str) or not isinstance(device_secret, str) \
                or not device_id or not device_secret:
            raise MissingCredentials()

        if not self.check_device_secret(device_id, device_secret):
            logger.warning(f"Invalid device credentials for device {device_id}")
            raise InvalidCredentials()

        issued_at = int(self._clock())
        payload = {
            'deviceId': device_id,
            'type': TOKEN_TYPE,
            'iat': issued_at,
            'exp': issued_at + self.expires_in
        }
        token = jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)
        logger.info(f"Token generated for device {device_id}")
        return IssuedToken(token, self.expires_in)

    def verify(self, token: Optional[str]) -> TokenClaims:
        """
        Verify a bearer token and return the device it is bound to

        Expiry is checked against the injected clock rather than PyJWT's
        own wall clock.

        Raises:
            MissingToken: If no token was presented
            InvalidOrExpiredToken: On a bad signature, malformed payload or expiry
        """
        if not token:
            raise MissingToken()

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={'require': ['exp', 'iat'], 'verify_exp': False, 'verify_iat': False}
            )
        except jwt.PyJWTError as e:
            logger.warning(f"Invalid token attempt: {type(e).__name__}")
            raise InvalidOrExpiredToken() from None

        device_id = payload.get('deviceId')
        expires_at = payload.get('exp')
        if payload.get('type') != TOKEN_TYPE or not isinstance(device_id, str) or not device_id \
                or not isinstance(expires_at, (int, float)):
            logger.warning("Invalid token attempt: unexpected claims")
            raise InvalidOrExpiredToken()

        if expires_at <= self._clock():
            logger.info(f"Expired token presented for device {device_id}")
            raise InvalidOrExpiredToken()

        return TokenClaims(device_id, int(expires_at))
