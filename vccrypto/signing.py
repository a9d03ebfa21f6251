from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys

from vccrypto.encoding import from_hex, to_hex

# Wallet message framing, "\x19Ethereum Signed Message:\n" + len(message)
PREFIX_FRAMING = b"\x19Ethereum Signed Message:\n32"

def _check_digest(digest: bytes) -> bytes:
    if not isinstance(digest, bytes):
        raise TypeError(f"Expected digest bytes, got {type(digest).__name__}")
    if len(digest) != 32:
        raise ValueError(f"Expected a 32-byte digest, got {len(digest)} bytes")
    return digest

def _check_signature(sig_hex: str) -> bytes:
    sig = from_hex(sig_hex)
    if len(sig) != 65:
        raise ValueError(f"Expected a 65-byte signature, got {len(sig)} bytes")
    return sig

def _split_v(sig: bytes) -> keys.Signature:
    v = sig[64]
    if v >= 27:
        v -= 27
    return keys.Signature(signature_bytes=sig[:64] + bytes([v]))

def secp256k1_sign(digest: bytes, sk_hex: str) -> str:
    """
    Raw ECDSA over the digest bytes as given, no framing.
    Serialized r||s||v with v in {27, 28}, the form wallets and ecrecover use.
    """
    sk = keys.PrivateKey(from_hex(sk_hex))
    sig = sk.sign_msg_hash(_check_digest(digest)).to_bytes()
    return to_hex(sig[:64] + bytes([sig[64] + 27]))

def secp256k1_recover(digest: bytes, sig_hex: str) -> str:
    """Uncompressed public key (0x04...) that produced sig over the bare digest."""
    sig = _split_v(_check_signature(sig_hex))
    pk = sig.recover_public_key_from_msg_hash(_check_digest(digest))
    return to_hex(b"\x04" + pk.to_bytes())

def prefixed_sign(digest: bytes, sk_hex: str) -> str:
    """
    Sign digest wrapped in the wallet message framing (personal_sign / EIP-191 v0x45).
    A ledger-style verifier only needs ecrecover and the signer's address.
    """
    message = encode_defunct(primitive=_check_digest(digest))
    signed = Account.sign_message(message, private_key=from_hex(sk_hex))
    return to_hex(bytes(signed.signature))

def prefixed_recover(digest: bytes, sig_hex: str) -> str:
    """Checksummed address that produced sig over the framed digest."""
    sig = _check_signature(sig_hex)
    return Account.recover_message(encode_defunct(primitive=_check_digest(digest)), signature=sig)
