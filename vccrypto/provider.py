"""Crypto provider: the only place that touches key material and curve operations.

Everything above this layer (issuer, verifier, converter) talks to a
``CryptoProvider`` so tests and alternative back ends (a hardware key store,
a remote signer) can be swapped in without global state.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from eth_account import Account
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import ValidationError as EthUtilsValidationError

from vccrypto.encoding import normalize_hex, to_hex
from vccrypto.errors import CryptographicError
from vccrypto.hashing import keccak256
from vccrypto.keys import Identity
from vccrypto.signing import (
    prefixed_recover,
    prefixed_sign,
    secp256k1_recover,
    secp256k1_sign,
)

logger = logging.getLogger(__name__)

_LIBRARY_ERRORS = (ValueError, TypeError, ValidationError, EthUtilsValidationError, BadSignature)


@runtime_checkable
class CryptoProvider(Protocol):
    def generate_identity(self) -> Identity: ...

    def hash(self, data: bytes) -> bytes: ...

    def sign_raw(self, digest: bytes, signing_key: str) -> str: ...

    def sign_prefixed(self, digest: bytes, signing_key: str) -> str: ...

    def verify_raw(self, digest: bytes, signature: str, verification_key: str) -> bool: ...

    def verify_prefixed(self, digest: bytes, signature: str, short_address: str) -> bool: ...

    def recover_address(self, digest: bytes, signature: str) -> str: ...

    def recover_verification_key(self, digest: bytes, signature: str) -> str: ...


class Secp256k1Provider:
    """secp256k1 / Keccak-256, the key and address formats Ethereum wallets use."""

    def generate_identity(self) -> Identity:
        try:
            account = Account.create()
            return Identity.from_signing_key(to_hex(bytes(account.key)))
        except _LIBRARY_ERRORS as exc:
            raise CryptographicError(f"secp256k1 key generation failed: {exc}") from exc

    def hash(self, data: bytes) -> bytes:
        return keccak256(data)

    def sign_raw(self, digest: bytes, signing_key: str) -> str:
        try:
            return secp256k1_sign(digest, signing_key)
        except _LIBRARY_ERRORS as exc:
            raise CryptographicError(f"secp256k1 signing failed: {exc}") from exc

    def sign_prefixed(self, digest: bytes, signing_key: str) -> str:
        try:
            return prefixed_sign(digest, signing_key)
        except _LIBRARY_ERRORS as exc:
            raise CryptographicError(f"secp256k1 prefixed signing failed: {exc}") from exc

    def recover_verification_key(self, digest: bytes, signature: str) -> str:
        try:
            return secp256k1_recover(digest, signature)
        except _LIBRARY_ERRORS as exc:
            raise CryptographicError(f"Public key recovery failed: {exc}") from exc

    def recover_address(self, digest: bytes, signature: str) -> str:
        try:
            return prefixed_recover(digest, signature)
        except _LIBRARY_ERRORS as exc:
            raise CryptographicError(f"Address recovery failed: {exc}") from exc

    def verify_raw(self, digest: bytes, signature: str, verification_key: str) -> bool:
        if not isinstance(verification_key, str) or not isinstance(signature, str):
            return False
        try:
            recovered = self.recover_verification_key(digest, signature)
        except CryptographicError as exc:
            logger.debug("Raw verification rejected signature: %s", exc)
            return False
        return recovered == _uncompressed(verification_key)

    def verify_prefixed(self, digest: bytes, signature: str, short_address: str) -> bool:
        if not isinstance(short_address, str) or not isinstance(signature, str):
            return False
        try:
            recovered = self.recover_address(digest, signature)
        except CryptographicError as exc:
            logger.debug("Prefixed verification rejected signature: %s", exc)
            return False
        return normalize_hex(recovered) == normalize_hex(short_address)


def _uncompressed(verification_key: str) -> str:
    key = normalize_hex(verification_key)
    if len(key) == 2 + 128:
        key = "0x04" + key[2:]
    return key


_default = None


def default_provider() -> CryptoProvider:
    global _default
    if _default is None:
        _default = Secp256k1Provider()
    return _default
