"""End-to-end flows: lock access, holder wallet round trip and the scenario runner."""

from __future__ import annotations

import csv
from urllib.parse import urlsplit

import pytest

from conftest import SUBJECT
from experiments import run_scenarios
from experiments.scenarios import SCENARIOS
from issuer.issuer_service import create_app
from vccrypto.modes import SigningMode
from wallet import issue_credential
from wallet.storage import load_credential_bundle, save_credential_bundle
from wallet.verify_stored import verify_stored


class TestLockAccess:
    """A door lock holds only the issuer's verification key; the ledger only its address."""

    def test_issue_verify_convert_revoke(self, issuer, verifier, converter, identity):
        vc = issuer.issue_raw(
            {"id": "did:example:building-admin"},
            SUBJECT,
            identity.signing_key,
            identity.verification_key,
            credential_types=["AccessControlCredential"],
            validity_days=365,
        )
        at_lock = verifier.verify(vc, identity.verification_key, expected_mode=SigningMode.RAW)
        assert at_lock.verified
        assert at_lock.details["subject"] == SUBJECT["id"]

        prefixed = converter.to_prefixed(vc, identity.signing_key, identity.short_address)
        assert converter.verify_prefixed_signature(prefixed, identity.short_address)
        request = converter.revocation_request(prefixed)
        assert request["credentialHash"] == at_lock.details["credentialHash"]
        assert request["signer"] == identity.short_address


class FakeResponse:
    def __init__(self, response):
        self.response = response

    def raise_for_status(self):
        if self.response.status_code >= 400:
            raise RuntimeError(f"HTTP {self.response.status_code}")

    def json(self):
        return self.response.get_json()


@pytest.fixture()
def routed_requests(monkeypatch, identity, provider):
    """Send the wallet's HTTP calls to an in-process issuer service."""
    client = create_app(identity=identity, provider=provider).test_client()

    def post(url, json=None, timeout=None):
        return FakeResponse(client.post(urlsplit(url).path, json=json))

    def get(url, timeout=None):
        return FakeResponse(client.get(urlsplit(url).path))

    monkeypatch.setattr(issue_credential.requests, "post", post)
    monkeypatch.setattr(issue_credential.requests, "get", get)
    return client


class TestWallet:
    def test_request_and_verify_stored(self, routed_requests, identity, tmp_path):
        bundle = issue_credential.request_credential(
            {"id": "did:example:holder", "accessLevel": "full-access"},
            issuer="did:example:issuer",
            mode="prefixed",
            validity_days=90,
            issuer_url="http://issuer.test",
        )
        assert bundle["issuer"] == identity.public()
        assert bundle["credential"]["proof"]["verificationMethod"] == identity.short_address

        path = tmp_path / "wallet" / "credential.json"
        save_credential_bundle(bundle, path)
        stored = load_credential_bundle(path)
        assert stored == bundle

        result = verify_stored(stored)
        assert result.verified, result.error

    def test_tampered_store_fails(self, routed_requests, tmp_path):
        bundle = issue_credential.request_credential({"id": "did:example:holder"}, issuer_url="http://issuer.test")
        bundle["credential"]["credentialSubject"]["id"] = "did:example:mallory"
        assert verify_stored(bundle).error == "Invalid signature"

    def test_load_missing_bundle(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_credential_bundle(tmp_path / "absent.json")


class TestScenarioRunner:
    def test_every_scenario_behaves_as_expected(self, tmp_path):
        path = tmp_path / "results" / "scenarios.csv"
        rows = run_scenarios.main(n=1, path=path)
        assert len(rows) == len(SCENARIOS)
        mismatched = [(r["scenario"], r["reason"]) for r in rows if r["accepted"] != r["expected"]]
        assert mismatched == []

        with path.open(newline="") as f:
            written = list(csv.DictReader(f))
        assert {r["scenario"] for r in written} == set(SCENARIOS)
        assert all(int(r["credential_bytes"]) > 0 for r in written)
