"""Re-sign an issued credential under the other signing mode.

A credential issued in Raw mode for offline readers has to be re-signed in
Prefixed mode before an address-based revocation record will accept it. The
claims document, and therefore the canonical hash that the revocation record
is keyed by, stays byte-for-byte the same; only the proof is replaced.

    converter = ModeConverter()
    prefixed = converter.to_prefixed(raw_vc, identity.signing_key, identity.short_address)
    assert converter.verify_hash_consistency(raw_vc, prefixed)
    request = converter.revocation_request(prefixed)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from issuer.issue import Clock, CredentialIssuer, utc_now
from vccrypto.canonical import canonicalize
from vccrypto.encoding import to_hex
from vccrypto.errors import ConfigurationError, CredentialError
from vccrypto.keys import Identity
from vccrypto.modes import (
    PrefixedSigning,
    SigningMode,
    mode_for_proof_type,
    select_proof,
    strategy_for_mode,
)
from vccrypto.provider import CryptoProvider, default_provider

logger = logging.getLogger(__name__)

def strip_proof(credential: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in credential.items() if k != "proof"}

class ModeConverter:
    def __init__(self, provider: Optional[CryptoProvider] = None, clock: Optional[Clock] = None):
        self.provider = provider or default_provider()
        self.clock = clock or utc_now
        self._issuer = CredentialIssuer(self.provider, self.clock)

    def get_hash(self, credential: Dict[str, Any]) -> str:
        """Canonical hash of everything but the proof, as 0x hex. Registry lookups key on this."""
        return to_hex(self.provider.hash(canonicalize(strip_proof(credential))))

    def verify_hash_consistency(self, a: Dict[str, Any], b: Dict[str, Any]) -> bool:
        return self.get_hash(a) == self.get_hash(b)

    def convert_mode(
        self,
        credential: Dict[str, Any],
        signing_key: str,
        new_identity: Union[Identity, str],
        *,
        target_mode: Optional[Union[SigningMode, str]] = None,
    ) -> Dict[str, Any]:
        """
        Replace the proof with one made under the other mode.

        new_identity is either the issuer's Identity or the key identifier the
        target mode verifies against (verification key for Raw, short address
        for Prefixed). The target defaults to the opposite of the current
        proof's mode; it must be given when the current proof is missing or of
        an unknown type. The input credential is left untouched.
        """
        if not isinstance(credential, dict):
            raise ConfigurationError("credential must be a dict")
        if not isinstance(signing_key, str) or not signing_key:
            raise ConfigurationError("signing_key is required")

        current = select_proof(credential.get("proof"))
        current_mode = mode_for_proof_type(current.get("type")) if isinstance(current, dict) else None

        if target_mode is None:
            if current_mode is None:
                raise ConfigurationError("Cannot infer target mode: credential has no recognised proof")
            target = current_mode.other()
        else:
            try:
                target = SigningMode(target_mode)
            except ValueError as exc:
                raise ConfigurationError(f"Unknown signing mode: {target_mode!r}") from exc

        strategy = strategy_for_mode(target, self.provider)
        if isinstance(new_identity, Identity):
            key_id = strategy.key_id(new_identity)
        elif isinstance(new_identity, str) and new_identity:
            key_id = new_identity
        else:
            raise ConfigurationError(f"{strategy.key_option} is required for {target.value}-mode conversion")

        document = strip_proof(credential)
        converted = self._issuer.sign_credential(document, signing_key, strategy, key_id)
        logger.info(
            "Converted credential %s from %s to %s mode",
            self.get_hash(converted),
            current_mode.value if current_mode else "unsigned",
            target.value,
        )
        return converted

    def to_prefixed(self, credential: Dict[str, Any], signing_key: str, short_address: str) -> Dict[str, Any]:
        return self.convert_mode(credential, signing_key, short_address, target_mode=SigningMode.PREFIXED)

    def to_raw(self, credential: Dict[str, Any], signing_key: str, verification_key: str) -> Dict[str, Any]:
        return self.convert_mode(credential, signing_key, verification_key, target_mode=SigningMode.RAW)

    def _prefixed_proof(self, credential: Dict[str, Any]) -> Dict[str, Any]:
        proof = select_proof(credential.get("proof")) if isinstance(credential, dict) else None
        if not isinstance(proof, dict) or not isinstance(proof.get("proofValue"), str):
            raise CredentialError("Credential does not have a valid proof")
        if mode_for_proof_type(proof.get("type")) is not SigningMode.PREFIXED:
            raise CredentialError(
                "Credential is not signed in prefixed mode", {"proofType": proof.get("type")}
            )
        return proof

    def verify_prefixed_signature(self, credential: Dict[str, Any], expected_address: str) -> bool:
        """The check an ecrecover-style ledger performs before touching its record."""
        proof = self._prefixed_proof(credential)
        digest = self.provider.hash(canonicalize(strip_proof(credential)))
        return PrefixedSigning(self.provider).verify(digest, proof["proofValue"], expected_address)

    def revocation_hash(self, credential_id: str, issuer_address: str) -> str:
        """Key for a revocation record addressed by credential id rather than content hash."""
        if not isinstance(credential_id, str) or not credential_id:
            raise ConfigurationError("credential_id is required")
        if not isinstance(issuer_address, str) or not issuer_address:
            raise ConfigurationError("issuer_address is required")
        return to_hex(self.provider.hash(f"revoke_{credential_id}_{issuer_address}".encode("utf-8")))

    def revocation_request(self, credential: Dict[str, Any]) -> Dict[str, str]:
        """Hash, signature and signer as an address-based revocation record consumes them."""
        proof = self._prefixed_proof(credential)
        digest = self.provider.hash(canonicalize(strip_proof(credential)))
        return {
            "credentialHash": to_hex(digest),
            "signature": proof["proofValue"],
            "signer": self.provider.recover_address(digest, proof["proofValue"]),
        }
