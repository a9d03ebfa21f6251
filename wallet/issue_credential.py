import argparse
import json
import logging

import requests

from vccrypto.settings import DEFAULT_VALIDITY_DAYS, ISSUER_URL, configure_logging
from wallet.storage import CRED_PATH, save_credential_bundle

logger = logging.getLogger(__name__)

def request_credential(subject, issuer="did:example:issuer", mode="raw",
                       validity_days=DEFAULT_VALIDITY_DAYS, credential_types=None, issuer_url=ISSUER_URL):
    payload = {
        "issuer": issuer,
        "credentialSubject": subject,
        "mode": mode,
        "validityDays": validity_days,
        "credentialTypes": credential_types or [],
    }
    r = requests.post(f"{issuer_url}/issue", json=payload, timeout=5)
    r.raise_for_status()
    issued = r.json()

    r = requests.get(f"{issuer_url}/identity", timeout=5)
    r.raise_for_status()
    return {**issued, "issuer": r.json()}

def issue(subject, **kwargs):
    bundle = request_credential(subject, **kwargs)
    save_credential_bundle(bundle)
    logger.info("Stored credential %s", bundle["credentialHash"])
    print(f"Credential saved to {CRED_PATH}")
    return bundle

if __name__ == "__main__":
    p = argparse.ArgumentParser()
    p.add_argument("--subject", default='{"id": "did:example:holder", "accessLevel": "full-access"}',
                   help="credentialSubject as JSON")
    p.add_argument("--issuer", default="did:example:issuer")
    p.add_argument("--mode", choices=["raw", "prefixed"], default="raw")
    p.add_argument("--validity_days", type=float, default=DEFAULT_VALIDITY_DAYS)
    p.add_argument("--type", action="append", dest="types", default=[])
    args = p.parse_args()
    configure_logging()
    issue(
        json.loads(args.subject),
        issuer=args.issuer,
        mode=args.mode,
        validity_days=args.validity_days,
        credential_types=args.types,
    )
