"""
aaas_core.crypto
----------------
Ed25519 helpers for principal identity and event integrity:

- ed25519_generate / sign / verify: raw-key primitives
- principal_from_pubkey(): stable 0x-prefixed address for a public key
- sign_event() / verify_event(): signatures over LedgerEvent canonical bytes

Transaction signing by callers stays outside the core; these helpers only
let the notifier vouch for the events it emits.
"""

from __future__ import annotations
from typing import Tuple
import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from .events import LedgerEvent
from .utils import b64e, b64d


# --------- Ed25519 (sign/verify) ----------
def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.sign(data)

def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except (InvalidSignature, ValueError):
        return False


# --------- Principal addresses ----------
def principal_from_pubkey(pub_raw: bytes) -> str:
    """
    Derive a principal address from a raw Ed25519 public key.

    The address is the last 20 bytes of SHA-256(pubkey), hex-encoded with a
    0x prefix, so it has the same shape as the ledger's ZERO_ADDRESS.
    """
    digest = hashlib.sha256(pub_raw).hexdigest()
    return "0x" + digest[-40:]


def pubkey_fingerprint(pubkey_b64: str) -> str:
    """Hex SHA-256 of a base64 public key, truncated to 32 chars."""
    return hashlib.sha256(b64d(pubkey_b64)).hexdigest()[:32]


# --------- Event helpers ----------
def sign_event(event: LedgerEvent, priv_raw: bytes, key_id: str) -> LedgerEvent:
    event.key_id = key_id
    event.sig = b64e(ed25519_sign(priv_raw, event.to_signing_bytes()))
    return event

def verify_event(event: LedgerEvent, pub_raw: bytes) -> bool:
    if not event.sig:
        return False
    return ed25519_verify(pub_raw, b64d(event.sig), event.to_signing_bytes())
