from pathlib import Path
import json
from typing import Any, Dict

from vccrypto.settings import WALLET_DIR

CRED_PATH = WALLET_DIR / "credential.json"  # {"credential":..., "credentialHash":..., "issuer":{...}}

def save_credential_bundle(bundle: Dict[str, Any], path: Path = CRED_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(bundle, indent=2, sort_keys=True), encoding="utf-8")

def load_credential_bundle(path: Path = CRED_PATH) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError("No credential stored. Run python -m wallet.issue_credential first.")
    return json.loads(path.read_text(encoding="utf-8"))
