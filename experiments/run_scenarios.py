import argparse
from datetime import timedelta
from pathlib import Path

from experiments.metrics import size_bytes, timed, write_csv
from experiments.scenarios import SCENARIOS
from issuer.issue import CredentialIssuer, utc_now
from issuer.revoke import ModeConverter
from vccrypto.keys import generate_identity
from vccrypto.modes import PrefixedSigning, RawSigning
from verifier.verify import CredentialVerifier

OUT = Path("experiments/results")
CSV_PATH = OUT / "scenarios.csv"

SUBJECT = {
    "id": "did:example:holder",
    "userMetaDataHash": "0x" + "ab" * 32,
    "lock": {"id": "lock-building-a-room-101", "name": "Lab Room 101"},
    "accessLevel": "full-access",
}

def build(name, scenario, identity, other):
    issuer = CredentialIssuer()
    options = {"credential_types": ["AccessControlCredential"]}
    if "validity_days" in scenario:
        options["validity_days"] = scenario["validity_days"]
    else:
        options["validity_days"] = 30
    if "valid_from_days" in scenario:
        options["valid_from"] = utc_now() + timedelta(days=scenario["valid_from_days"])

    vc = issuer.issue(
        {"id": "did:example:issuer", "name": "Example Org"},
        SUBJECT,
        identity.signing_key,
        mode=scenario["mode"],
        verification_key=identity.verification_key,
        short_address=identity.short_address,
        **options,
    )

    if scenario.get("convert"):
        vc = ModeConverter().convert_mode(vc, identity.signing_key, identity)
    if scenario.get("tamper"):
        field = scenario["tamper"]
        vc = {**vc, field: {**vc[field], "id": "did:example:mallory"}}
    if scenario.get("swap_proof_type"):
        other_type = PrefixedSigning.proof_type if vc["proof"]["type"] == RawSigning.proof_type else RawSigning.proof_type
        vc = {**vc, "proof": {**vc["proof"], "type": other_type}}

    key = other if scenario.get("wrong_key") else identity
    return vc, key

def run_trial(name, scenario, identity, other, verifier):
    vc, key = build(name, scenario, identity, other)
    result, verify_ms = timed(lambda: verifier.verify(vc, key))
    return {
        "scenario": name,
        "mode": scenario["mode"],
        "accepted": result.verified,
        "expected": scenario["expect"],
        "reason": result.error or "",
        "verify_ms": round(verify_ms, 2),
        "credential_bytes": size_bytes(vc),
    }

def main(n=10, path=CSV_PATH):
    identity = generate_identity()
    other = generate_identity()
    verifier = CredentialVerifier()

    rows = []
    for name, scenario in SCENARIOS.items():
        for _ in range(n):
            rows.append(run_trial(name, scenario, identity, other, verifier))

    write_csv(rows, path)
    mismatches = [r for r in rows if r["accepted"] != r["expected"]]
    print("Wrote:", path)
    print("Rows:", len(rows), "Unexpected outcomes:", len(mismatches))
    return rows

if __name__ == "__main__":
    p = argparse.ArgumentParser()
    p.add_argument("--n", type=int, default=20)
    p.add_argument("--out", default=str(CSV_PATH))
    args = p.parse_args()
    main(n=args.n, path=Path(args.out))
