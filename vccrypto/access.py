"""Challenge-response and short-lived access tokens for lock readers.

A reader that has already accepted a credential still needs to know the
holder is present: it sends a fresh challenge, the holder signs it, and the
reader checks the answer against the key it trusts. Access tokens are the
same idea with an expiry baked into the signed string:

    access_<expires-at, ms since epoch>_<0x + 16 random bytes>

Both are signed with the same Raw/Prefixed strategies as credentials, over
the Keccak-256 of the UTF-8 text.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from vccrypto.encoding import to_hex
from vccrypto.keys import Identity
from vccrypto.modes import SigningMode, strategy_for_mode
from vccrypto.provider import CryptoProvider, default_provider

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "access"
DEFAULT_TOKEN_SECONDS = 300


@dataclass(frozen=True)
class AccessToken:
    token: str
    signature: str
    expires_at: int  # ms since epoch

    def to_dict(self):
        return {"token": self.token, "signature": self.signature, "expiresAt": self.expires_at}


def _epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


class AccessService:
    def __init__(
        self,
        provider: Optional[CryptoProvider] = None,
        mode: Union[SigningMode, str] = SigningMode.RAW,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.provider = provider or default_provider()
        self.strategy = strategy_for_mode(SigningMode(mode), self.provider)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _digest(self, text: str) -> bytes:
        return self.provider.hash(text.encode("utf-8"))

    def _key(self, key_material: Union[Identity, str]) -> Optional[str]:
        if isinstance(key_material, Identity):
            return self.strategy.key_id(key_material)
        return key_material if isinstance(key_material, str) and key_material else None

    def _verify(self, text: str, signature: str, key_material: Union[Identity, str]) -> bool:
        key = self._key(key_material)
        if key is None or not isinstance(signature, str):
            return False
        return self.strategy.verify(self._digest(text), signature, key)

    def create_challenge(self) -> str:
        return to_hex(os.urandom(32))

    def sign_challenge(self, challenge: str, signing_key: str) -> str:
        return self.strategy.sign(self._digest(challenge), signing_key)

    def verify_challenge_response(self, challenge: str, response: str, key_material: Union[Identity, str]) -> bool:
        if not isinstance(challenge, str) or not challenge:
            return False
        return self._verify(challenge, response, key_material)

    def generate_access_token(self, signing_key: str, validity_seconds: float = DEFAULT_TOKEN_SECONDS) -> AccessToken:
        expires_at = _epoch_ms(self.clock()) + int(validity_seconds * 1000)
        token = f"{TOKEN_PREFIX}_{expires_at}_{to_hex(os.urandom(16))}"
        signature = self.strategy.sign(self._digest(token), signing_key)
        logger.debug("Issued %s-mode access token expiring at %d", self.strategy.mode.value, expires_at)
        return AccessToken(token=token, signature=signature, expires_at=expires_at)

    def verify_access_token(self, token: str, signature: str, key_material: Union[Identity, str]) -> bool:
        """False for a malformed, expired or wrongly signed token; never raises."""
        if not isinstance(token, str):
            return False
        parts = token.split("_")
        if len(parts) < 3 or parts[0] != TOKEN_PREFIX or not (parts[1].isascii() and parts[1].isdigit()):
            return False
        if _epoch_ms(self.clock()) > int(parts[1]):
            return False
        return self._verify(token, signature, key_material)
