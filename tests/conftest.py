"""Shared fixtures: one provider, two identities and a frozen clock."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from issuer.issue import CredentialIssuer
from issuer.revoke import ModeConverter
from vccrypto.provider import Secp256k1Provider
from verifier.events import MemoryObserver
from verifier.verify import CredentialVerifier

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

ISSUER = {"id": "did:example:issuer123", "name": "Example University"}

SUBJECT = {
    "id": "did:example:user456",
    "userMetaDataHash": "0x" + "12" * 32,
    "lock": {"id": "lock-building-a-room-101", "name": "Lab Room 101"},
    "accessLevel": "full-access",
    "permissions": ["unlock", "lock"],
}


class RecordingProvider:
    """Delegates to a real provider and records which operations ran."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def __getattr__(self, name):
        target = getattr(self.inner, name)

        def wrapper(*args, **kwargs):
            self.calls.append(name)
            return target(*args, **kwargs)

        return wrapper


def fixed_clock():
    return FIXED_NOW


@pytest.fixture(scope="session")
def provider():
    return Secp256k1Provider()


@pytest.fixture(scope="session")
def identity(provider):
    return provider.generate_identity()


@pytest.fixture(scope="session")
def other_identity(provider):
    return provider.generate_identity()


@pytest.fixture()
def recording_provider(provider):
    return RecordingProvider(provider)


@pytest.fixture()
def issuer(provider):
    return CredentialIssuer(provider, clock=fixed_clock)


@pytest.fixture()
def observer():
    return MemoryObserver()


@pytest.fixture()
def verifier(provider, observer):
    return CredentialVerifier(provider, observer=observer, clock=fixed_clock)


@pytest.fixture()
def converter(provider):
    return ModeConverter(provider, clock=fixed_clock)


@pytest.fixture()
def raw_vc(issuer, identity):
    return issuer.issue_raw(
        ISSUER,
        SUBJECT,
        identity.signing_key,
        identity.verification_key,
        credential_types=["AccessControlCredential"],
        credential_id="urn:uuid:3978344f-8596-4c3a-a978-8fcaba3903c5",
        validity_days=30,
    )


@pytest.fixture()
def prefixed_vc(issuer, identity):
    return issuer.issue_prefixed(
        ISSUER,
        SUBJECT,
        identity.signing_key,
        identity.short_address,
        credential_types=["AccessControlCredential"],
        validity_days=30,
    )
