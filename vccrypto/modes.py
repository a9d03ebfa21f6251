"""Signing modes: two interchangeable ways to sign the same credential digest.

RAW       signs the digest bytes as-is; verified by recovering the full
          uncompressed verification key. Suits verifiers that only hold the
          issuer's public key (embedded readers, offline devices).
PREFIXED  signs the digest wrapped in the wallet message framing; verified by
          recovering the 20-byte short address, which is all an
          ecrecover-style ledger exposes.

A signature made under one mode never verifies under the other: the two
strategies hash different byte strings before signing.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Type

from vccrypto.keys import Identity
from vccrypto.provider import CryptoProvider, default_provider

PROOF_PURPOSE = "assertionMethod"


class SigningMode(str, Enum):
    RAW = "raw"
    PREFIXED = "prefixed"

    def other(self) -> "SigningMode":
        return SigningMode.PREFIXED if self is SigningMode.RAW else SigningMode.RAW


class SigningStrategy:
    mode: SigningMode
    proof_type: str
    key_option: str

    def __init__(self, provider: Optional[CryptoProvider] = None):
        self.provider = provider or default_provider()

    def sign(self, digest: bytes, signing_key: str) -> str:
        raise NotImplementedError

    def verify(self, digest: bytes, signature: str, key_material: str) -> bool:
        raise NotImplementedError

    def key_id(self, identity: Identity) -> str:
        """The part of an identity this mode verifies against."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(proof_type={self.proof_type!r})"


class RawSigning(SigningStrategy):
    mode = SigningMode.RAW
    proof_type = "EcdsaSecp256k1RecoverySignature2020"
    key_option = "verification_key"

    def sign(self, digest: bytes, signing_key: str) -> str:
        return self.provider.sign_raw(digest, signing_key)

    def verify(self, digest: bytes, signature: str, key_material: str) -> bool:
        return self.provider.verify_raw(digest, signature, key_material)

    def key_id(self, identity: Identity) -> str:
        return identity.verification_key


class PrefixedSigning(SigningStrategy):
    mode = SigningMode.PREFIXED
    proof_type = "EcdsaSecp256k1Signature2019"
    key_option = "short_address"

    def sign(self, digest: bytes, signing_key: str) -> str:
        return self.provider.sign_prefixed(digest, signing_key)

    def verify(self, digest: bytes, signature: str, key_material: str) -> bool:
        return self.provider.verify_prefixed(digest, signature, key_material)

    def key_id(self, identity: Identity) -> str:
        return identity.short_address


_STRATEGIES: Dict[SigningMode, Type[SigningStrategy]] = {
    SigningMode.RAW: RawSigning,
    SigningMode.PREFIXED: PrefixedSigning,
}

PROOF_TYPES: Dict[str, SigningMode] = {cls.proof_type: mode for mode, cls in _STRATEGIES.items()}


def strategy_for_mode(mode: SigningMode, provider: Optional[CryptoProvider] = None) -> SigningStrategy:
    return _STRATEGIES[SigningMode(mode)](provider)


def mode_for_proof_type(proof_type: Any) -> Optional[SigningMode]:
    if not isinstance(proof_type, str):
        return None
    return PROOF_TYPES.get(proof_type)


def strategy_for_proof_type(proof_type: Any, provider: Optional[CryptoProvider] = None) -> Optional[SigningStrategy]:
    mode = mode_for_proof_type(proof_type)
    if mode is None:
        return None
    return strategy_for_mode(mode, provider)


def select_proof(proof: Any) -> Any:
    """
    A credential carries one proof or a list of them; the first list entry is
    the one that counts. Later entries are never looked at.
    Returns None when there is nothing to select.
    """
    if isinstance(proof, (list, tuple)):
        return proof[0] if proof else None
    return proof
