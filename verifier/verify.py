"""Credential verification.

Verification answers "did this issuer sign exactly this document?", validation
answers "is it acceptable right now?". verify() does both, in this order:

    structure -> signature -> validity window -> success

The first failing stage ends the run with ``VerificationResult(verified=False,
error=...)``. verify() never raises: credentials arrive from untrusted
holders, and callers loop over batches without per-item exception handling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

from issuer.issue import BASE_TYPE, parse_iso, utc_now
from vccrypto.canonical import canonicalize
from vccrypto.encoding import to_hex
from vccrypto.errors import CanonicalizationError
from vccrypto.keys import Identity
from vccrypto.modes import SigningMode, SigningStrategy, select_proof, strategy_for_proof_type
from vccrypto.provider import CryptoProvider, default_provider
from verifier.events import (
    NullObserver,
    VerificationEvent,
    VerificationEventKind,
    VerificationObserver,
)

logger = logging.getLogger(__name__)

KeyMaterial = Union[str, Identity, Mapping[str, str]]

_OPTION_ALIASES = {
    "checkExpiration": "check_expiration",
    "checkNotBefore": "check_not_before",
    "referenceTime": "reference_time",
    "currentTime": "reference_time",
    "expectedMode": "expected_mode",
}


@dataclass
class VerificationResult:
    verified: bool
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    credential: Optional[Dict[str, Any]] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"verified": self.verified}
        if self.error is not None:
            out["error"] = self.error
        if self.details is not None:
            out["details"] = self.details
        return out


@dataclass(frozen=True)
class VerifyOptions:
    check_expiration: bool = True
    check_not_before: bool = True
    reference_time: Optional[datetime] = None
    expected_mode: Optional[SigningMode] = None

    @classmethod
    def build(cls, options: Any = None, **overrides: Any) -> "VerifyOptions":
        if options is None:
            values: Dict[str, Any] = {}
        elif isinstance(options, VerifyOptions):
            values = {
                "check_expiration": options.check_expiration,
                "check_not_before": options.check_not_before,
                "reference_time": options.reference_time,
                "expected_mode": options.expected_mode,
            }
        elif isinstance(options, Mapping):
            values = {_OPTION_ALIASES.get(k, k): v for k, v in options.items()}
        else:
            raise TypeError(f"options must be VerifyOptions or a mapping, not {type(options).__name__}")
        values.update({_OPTION_ALIASES.get(k, k): v for k, v in overrides.items()})

        unknown = set(values) - {"check_expiration", "check_not_before", "reference_time", "expected_mode"}
        if unknown:
            raise TypeError(f"Unknown verify options: {sorted(unknown)}")

        ref = values.get("reference_time")
        if isinstance(ref, str):
            values["reference_time"] = parse_iso(ref)
        elif ref is not None and not isinstance(ref, datetime):
            raise TypeError("reference_time must be a datetime or ISO-8601 string")
        if values.get("expected_mode") is not None:
            values["expected_mode"] = SigningMode(values["expected_mode"])
        for flag in ("check_expiration", "check_not_before"):
            if flag in values and values[flag] is None:
                del values[flag]
            elif flag in values:
                values[flag] = bool(values[flag])
        return cls(**values)


class _Rejected(Exception):
    def __init__(self, stage: str, reason: str):
        self.stage = stage
        self.reason = reason
        super().__init__(reason)


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _issuer_id(issuer: Any) -> Optional[str]:
    if isinstance(issuer, str):
        return issuer
    if isinstance(issuer, dict):
        return issuer.get("id")
    return None


def _subject_id(subject: Any) -> Optional[str]:
    if isinstance(subject, list):
        subject = subject[0] if subject else None
    if isinstance(subject, dict):
        return subject.get("id")
    return None


class CredentialVerifier:
    def __init__(
        self,
        provider: Optional[CryptoProvider] = None,
        observer: Optional[VerificationObserver] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.provider = provider or default_provider()
        self.observer = observer or NullObserver()
        self.clock = clock or utc_now

    def verify(
        self,
        credential: Any,
        key_material: KeyMaterial,
        options: Any = None,
        **overrides: Any,
    ) -> VerificationResult:
        cred_id = None
        if isinstance(credential, dict) and isinstance(credential.get("id"), str):
            cred_id = credential["id"]
        self._emit(VerificationEventKind.STARTED, "start", None, cred_id)

        try:
            opts = VerifyOptions.build(options, **overrides)
            strategy, proof = self._check_structure(credential, opts)
            digest = self._check_signature(credential, proof, strategy, key_material)
            window = self._check_validity(credential, opts)
        except _Rejected as rejected:
            self._emit(VerificationEventKind.FAILED, rejected.stage, rejected.reason, cred_id)
            return VerificationResult(verified=False, error=rejected.reason)
        except Exception as exc:
            message = f"Verification failed: {exc}"
            self._emit(VerificationEventKind.FAILED, "internal", message, cred_id)
            return VerificationResult(verified=False, error=message)

        details = {
            "issuer": _issuer_id(credential["issuer"]),
            "subject": _subject_id(credential["credentialSubject"]),
            "validFrom": credential["validFrom"],
            "validUntil": credential.get("validUntil"),
            "isExpired": window["isExpired"],
            "types": credential["type"],
            "id": credential.get("id"),
            "mode": strategy.mode.value,
            "credentialHash": to_hex(digest),
        }
        self._emit(VerificationEventKind.VERIFIED, "complete", None, cred_id)
        return VerificationResult(verified=True, details=details, credential=credential)

    def is_currently_valid(self, credential: Any, reference_time: Optional[datetime] = None) -> bool:
        """Structure and validity window only; no signature work."""
        try:
            opts = VerifyOptions(reference_time=reference_time)
            self._check_structure(credential, opts, require_proof=False)
            self._check_validity(credential, opts)
        except _Rejected:
            return False
        return True

    def _emit(self, kind: VerificationEventKind, stage: str, message: Optional[str], cred_id: Optional[str]) -> None:
        try:
            self.observer.notify(VerificationEvent(kind=kind, stage=stage, message=message, credential_id=cred_id))
        except Exception:
            logger.exception("Verification observer %r failed", self.observer)

    def _check_structure(self, credential: Any, opts: VerifyOptions, require_proof: bool = True):
        stage = "structure"
        if not isinstance(credential, dict):
            raise _Rejected(stage, "Credential must be an object")

        for name in ("@context", "type", "issuer", "credentialSubject", "validFrom"):
            value = credential.get(name)
            if value is None or value == "" or value == [] or value == {}:
                raise _Rejected(stage, f"Credential missing required field: {name}")

        if not isinstance(credential["@context"], (str, list, dict)):
            raise _Rejected(stage, "Credential has an invalid @context")

        types = credential["type"]
        if isinstance(types, str):
            types = [types]
        if not isinstance(types, list) or BASE_TYPE not in types:
            raise _Rejected(stage, f'Credential type must include "{BASE_TYPE}"')

        issuer_id = _issuer_id(credential["issuer"])
        if not isinstance(issuer_id, str) or not issuer_id:
            raise _Rejected(stage, "Credential has an invalid issuer")

        subject = credential["credentialSubject"]
        subjects = subject if isinstance(subject, list) else [subject]
        if not all(isinstance(s, dict) for s in subjects):
            raise _Rejected(stage, "Credential has an invalid credentialSubject")

        if not isinstance(credential["validFrom"], str):
            raise _Rejected(stage, "Invalid validFrom timestamp")
        if credential.get("validUntil") is not None and not isinstance(credential["validUntil"], str):
            raise _Rejected(stage, "Invalid validUntil timestamp")

        if not require_proof:
            return None, None

        proof = select_proof(credential.get("proof"))
        if proof is None or proof == {}:
            raise _Rejected(stage, "No proof found in credential")
        if not isinstance(proof, dict):
            raise _Rejected(stage, "Proof must be an object")
        if not isinstance(proof.get("proofValue"), str) or not proof["proofValue"]:
            raise _Rejected(stage, "Proof is missing proofValue")

        strategy = strategy_for_proof_type(proof.get("type"), self.provider)
        if strategy is None:
            raise _Rejected(stage, f"Unsupported proof type: {proof.get('type')}")
        if opts.expected_mode is not None and strategy.mode is not opts.expected_mode:
            raise _Rejected(stage, "Unexpected proof type")
        return strategy, proof

    def _resolve_key(self, key_material: Any, strategy: SigningStrategy) -> str:
        if isinstance(key_material, Identity):
            return strategy.key_id(key_material)
        if isinstance(key_material, Mapping):
            name = "verificationKey" if strategy.mode is SigningMode.RAW else "shortAddress"
            key_material = key_material.get(name)
        if isinstance(key_material, str) and key_material:
            return key_material
        raise _Rejected("signature", "Invalid key material")

    def _check_signature(self, credential: Dict[str, Any], proof: Dict[str, Any], strategy: SigningStrategy, key_material: Any) -> bytes:
        key = self._resolve_key(key_material, strategy)
        document = {k: v for k, v in credential.items() if k != "proof"}
        try:
            digest = self.provider.hash(canonicalize(document))
        except CanonicalizationError as exc:
            raise _Rejected("signature", f"Credential could not be canonicalized: {exc}") from exc
        if not strategy.verify(digest, proof["proofValue"], key):
            raise _Rejected("signature", "Invalid signature")
        return digest

    def _check_validity(self, credential: Dict[str, Any], opts: VerifyOptions) -> Dict[str, Any]:
        stage = "validity"
        now = _as_utc(opts.reference_time or self.clock())

        try:
            valid_from = parse_iso(credential["validFrom"])
        except ValueError:
            raise _Rejected(stage, "Invalid validFrom timestamp") from None
        valid_until = None
        if credential.get("validUntil") is not None:
            try:
                valid_until = parse_iso(credential["validUntil"])
            except ValueError:
                raise _Rejected(stage, "Invalid validUntil timestamp") from None

        if opts.check_not_before and now < valid_from:
            raise _Rejected(stage, f"Credential not yet valid. Valid from: {credential['validFrom']}")
        if opts.check_expiration and valid_until is not None and now > valid_until:
            raise _Rejected(stage, f"Credential expired. Valid until: {credential['validUntil']}")

        return {"isExpired": valid_until is not None and valid_until < now}
