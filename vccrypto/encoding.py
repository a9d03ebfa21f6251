from typing import Union

def to_hex(data: bytes) -> str:
    """Encode bytes as a lowercase 0x-prefixed hex string."""
    return "0x" + data.hex()

def strip_0x(s: str) -> str:
    return s[2:] if s[:2].lower() == "0x" else s

def from_hex(s: Union[str, bytes]) -> bytes:
    if isinstance(s, bytes):
        s = s.decode("ascii")
    if not isinstance(s, str):
        raise TypeError(f"Expected a hex string, got {type(s).__name__}")
    try:
        return bytes.fromhex(strip_0x(s.strip()))
    except ValueError as exc:
        raise ValueError(f"Not a hex string: {s[:20]!r}") from exc

def normalize_hex(s: str) -> str:
    """Lowercase, 0x-prefixed form used for comparing keys and addresses."""
    return "0x" + strip_0x(s.strip()).lower()
