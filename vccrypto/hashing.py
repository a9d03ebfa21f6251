import hashlib

from Crypto.Hash import keccak

def keccak256(data: bytes) -> bytes:
    """Keccak-256 (the pre-NIST padding Ethereum uses), not SHA3-256."""
    return keccak.new(digest_bits=256, data=data).digest()

def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()
