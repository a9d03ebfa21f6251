from __future__ import annotations

import copy
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import uuid4

from vccrypto.canonical import ABSENT, canonicalize, prune_absent
from vccrypto.encoding import to_hex
from vccrypto.errors import ConfigurationError
from vccrypto.modes import PROOF_PURPOSE, SigningMode, SigningStrategy, strategy_for_mode
from vccrypto.provider import CryptoProvider, default_provider

logger = logging.getLogger(__name__)

W3C_VC_CONTEXT_V2 = "https://www.w3.org/ns/credentials/v2"
BASE_TYPE = "VerifiableCredential"

RESERVED_FIELDS = frozenset({
    "@context", "type", "issuer", "validFrom", "validUntil",
    "credentialSubject", "id", "proof",
})

Issuer = Union[str, Dict[str, Any]]
Subject = Union[Dict[str, Any], List[Dict[str, Any]]]
Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def parse_iso(text: str) -> datetime:
    dt = datetime.fromisoformat(text.strip().replace("Z", "+00:00").replace("z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def generate_credential_id(prefix: str = "urn:uuid") -> str:
    return f"{prefix}:{uuid4()}"

def _optional(value: Any) -> Any:
    return ABSENT if value is None else copy.deepcopy(value)

def _string_list(name: str, values: Any) -> List[str]:
    if values is None:
        return []
    if not isinstance(values, (list, tuple)) or not all(isinstance(v, str) and v for v in values):
        raise ConfigurationError(f"{name} must be a list of non-empty strings", {"field": name})
    return list(values)

class CredentialIssuer:
    """
    Builds claims documents, hashes their canonical form and attaches a proof.

    What gets signed is the whole document except the proof: context, types,
    issuer, validity window, subject and every extra field. Changing any of
    them afterwards breaks the signature.
    """

    def __init__(self, provider: Optional[CryptoProvider] = None, clock: Optional[Clock] = None):
        self.provider = provider or default_provider()
        self.clock = clock or utc_now

    def make_credential(
        self,
        issuer: Issuer,
        subject: Subject,
        *,
        additional_contexts: Optional[List[str]] = None,
        credential_types: Optional[List[str]] = None,
        credential_id: Optional[str] = None,
        validity_days: Optional[float] = None,
        valid_from: Optional[Union[datetime, str]] = None,
        credential_status: Optional[Dict[str, Any]] = None,
        credential_schema: Any = None,
        evidence: Any = None,
        terms_of_use: Any = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        additional_contexts = _string_list("additional_contexts", additional_contexts)
        credential_types = _string_list("credential_types", credential_types)
        if credential_id is not None and (not isinstance(credential_id, str) or not credential_id):
            raise ConfigurationError("credential_id must be a non-empty string", {"field": "credential_id"})

        if isinstance(valid_from, str):
            try:
                valid_from = parse_iso(valid_from)
            except ValueError as exc:
                raise ConfigurationError(f"valid_from is not an ISO-8601 timestamp: {valid_from!r}") from exc
        start = valid_from or self.clock()

        valid_until = ABSENT
        if validity_days is not None:
            if isinstance(validity_days, bool) or not isinstance(validity_days, (int, float)):
                raise ConfigurationError("validity_days must be a number", {"field": "validity_days"})
            try:
                valid_until = to_iso(start + timedelta(days=validity_days))
            except (OverflowError, ValueError) as exc:
                raise ConfigurationError(
                    f"validity_days {validity_days!r} is out of range", {"field": "validity_days"}
                ) from exc
            if validity_days < 0:
                logger.warning("Issuing credential whose validUntil precedes validFrom (%s days)", validity_days)

        context = [W3C_VC_CONTEXT_V2] + [c for c in additional_contexts if c != W3C_VC_CONTEXT_V2]
        types = [BASE_TYPE] + [t for t in credential_types if t != BASE_TYPE]

        credential = {
            "@context": context,
            "type": types,
            "issuer": copy.deepcopy(issuer),
            "validFrom": to_iso(start),
            "validUntil": valid_until,
            "credentialSubject": copy.deepcopy(subject),
            "id": _optional(credential_id),
            "credentialStatus": _optional(credential_status),
            "credentialSchema": _optional(credential_schema),
            "evidence": _optional(evidence),
            "termsOfUse": _optional(terms_of_use),
        }

        if extra:
            clash = RESERVED_FIELDS.intersection(extra)
            if clash:
                raise ConfigurationError(
                    f"extra fields may not redefine {sorted(clash)}", {"fields": sorted(clash)}
                )
            for key, value in extra.items():
                if key in credential and credential[key] is not ABSENT:
                    raise ConfigurationError(f"extra field {key!r} is already set", {"field": key})
                credential[key] = copy.deepcopy(value)

        return prune_absent(credential)

    def hash_credential(self, credential: Dict[str, Any]) -> bytes:
        return self.provider.hash(canonicalize(credential))

    def sign_credential(
        self,
        credential: Dict[str, Any],
        signing_key: str,
        strategy: SigningStrategy,
        key_id: str,
    ) -> Dict[str, Any]:
        digest = self.hash_credential(credential)
        signature = strategy.sign(digest, signing_key)
        proof = {
            "type": strategy.proof_type,
            "created": to_iso(self.clock()),
            "proofPurpose": PROOF_PURPOSE,
            "verificationMethod": key_id,
            "proofValue": signature,
        }
        logger.info("Signed credential %s in %s mode", to_hex(digest), strategy.mode.value)
        return {**credential, "proof": proof}

    def issue(
        self,
        issuer: Issuer,
        subject: Subject,
        signing_key: str,
        *,
        mode: Optional[Union[SigningMode, str]] = None,
        verification_key: Optional[str] = None,
        short_address: Optional[str] = None,
        **options: Any,
    ) -> Dict[str, Any]:
        """
        Issue a signed credential.

        The mode follows from the key identifier supplied: verification_key
        selects Raw, short_address selects Prefixed. Pass mode explicitly when
        both are given. A missing identifier raises ConfigurationError before
        anything is built or signed.
        """
        if not isinstance(signing_key, str) or not signing_key:
            raise ConfigurationError("signing_key is required")
        mode = resolve_mode(mode, verification_key=verification_key, short_address=short_address)
        key_id = verification_key if mode is SigningMode.RAW else short_address

        credential = self.make_credential(issuer, subject, **options)
        strategy = strategy_for_mode(mode, self.provider)
        return self.sign_credential(credential, signing_key, strategy, key_id)

    def issue_raw(self, issuer: Issuer, subject: Subject, signing_key: str, verification_key: str, **options: Any) -> Dict[str, Any]:
        return self.issue(issuer, subject, signing_key, mode=SigningMode.RAW, verification_key=verification_key, **options)

    def issue_prefixed(self, issuer: Issuer, subject: Subject, signing_key: str, short_address: str, **options: Any) -> Dict[str, Any]:
        return self.issue(issuer, subject, signing_key, mode=SigningMode.PREFIXED, short_address=short_address, **options)

def resolve_mode(
    mode: Optional[Union[SigningMode, str]],
    *,
    verification_key: Optional[str] = None,
    short_address: Optional[str] = None,
) -> SigningMode:
    if mode is None:
        if verification_key and short_address:
            raise ConfigurationError("Both verification_key and short_address given; pass mode to choose one")
        if verification_key:
            return SigningMode.RAW
        if short_address:
            return SigningMode.PREFIXED
        raise ConfigurationError("verification_key (raw mode) or short_address (prefixed mode) is required")

    try:
        mode = SigningMode(mode)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown signing mode: {mode!r}") from exc

    if mode is SigningMode.RAW and not verification_key:
        raise ConfigurationError("verification_key is required for raw-mode credentials")
    if mode is SigningMode.PREFIXED and not short_address:
        raise ConfigurationError("short_address is required for prefixed-mode credentials")
    return mode
