import logging
import os
from pathlib import Path

ISSUER_DATA_DIR = Path(os.environ.get("VC_ISSUER_DATA_DIR", "issuer_data"))
WALLET_DIR = Path(os.environ.get("VC_WALLET_DIR", "wallet_data"))

ISSUER_HOST = os.environ.get("VC_ISSUER_HOST", "127.0.0.1")
ISSUER_PORT = int(os.environ.get("VC_ISSUER_PORT", "5001"))
ISSUER_URL = os.environ.get("VC_ISSUER_URL", f"http://{ISSUER_HOST}:{ISSUER_PORT}")

DEFAULT_VALIDITY_DAYS = float(os.environ.get("VC_DEFAULT_VALIDITY_DAYS", "365"))

LOG_LEVEL = os.environ.get("VC_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

def configure_logging(level: str = LOG_LEVEL) -> None:
    """Root logging setup for the scripts and the issuer service."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
