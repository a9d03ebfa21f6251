# scenario -> how the credential is issued / altered and whether verify should accept it
SCENARIOS = {
    "valid_raw": {"mode": "raw", "expect": True},
    "valid_prefixed": {"mode": "prefixed", "expect": True},
    "tampered_subject": {"mode": "raw", "tamper": "credentialSubject", "expect": False},
    "tampered_issuer": {"mode": "prefixed", "tamper": "issuer", "expect": False},
    "wrong_key": {"mode": "raw", "wrong_key": True, "expect": False},
    "expired": {"mode": "raw", "validity_days": -1, "expect": False},
    "not_yet_valid": {"mode": "raw", "valid_from_days": 1, "expect": False},
    "cross_mode": {"mode": "raw", "swap_proof_type": True, "expect": False},
    "converted": {"mode": "raw", "convert": True, "expect": True},
}
