from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict

from eth_keys import keys

from vccrypto.encoding import from_hex, to_hex
from vccrypto.settings import ISSUER_DATA_DIR

DEFAULT_IDENTITY_PATH = ISSUER_DATA_DIR / "issuer_identity.json"

@dataclass(frozen=True)
class Identity:
    signing_key: str        # 0x + 64 hex, never leaves its holder
    verification_key: str   # 0x04 + 128 hex, uncompressed, Raw mode
    short_address: str      # EIP-55 checksummed, Prefixed mode

    @classmethod
    def from_signing_key(cls, signing_key: str) -> "Identity":
        sk = keys.PrivateKey(from_hex(signing_key))
        pk = sk.public_key
        return cls(
            signing_key=to_hex(sk.to_bytes()),
            verification_key=to_hex(b"\x04" + pk.to_bytes()),
            short_address=pk.to_checksum_address(),
        )

    def public(self) -> Dict[str, str]:
        return {"verificationKey": self.verification_key, "shortAddress": self.short_address}

    def __repr__(self) -> str:
        return f"Identity(short_address={self.short_address!r})"

def generate_identity(provider=None) -> Identity:
    if provider is None:
        from vccrypto.provider import default_provider
        provider = default_provider()
    return provider.generate_identity()

def save_identity(identity: Identity, path: Path = DEFAULT_IDENTITY_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(identity), indent=2, sort_keys=True), encoding="utf-8")

def load_identity(path: Path = DEFAULT_IDENTITY_PATH) -> Identity:
    data = json.loads(path.read_text(encoding="utf-8"))
    identity = Identity.from_signing_key(data["signing_key"])
    if identity.short_address.lower() != str(data.get("short_address", "")).lower():
        raise ValueError(f"{path} holds a short_address that does not match its signing_key")
    return identity

def ensure_identity(path: Path = DEFAULT_IDENTITY_PATH, provider=None) -> Identity:
    if not path.exists():
        save_identity(generate_identity(provider), path)
    return load_identity(path)
