"""AES-256-GCM field encryption for sync snapshots.

Encrypted fields are stored as ``<nonce_b64>:<ciphertext_b64>`` with a random
96-bit nonce. Keys are 32-byte data-encryption keys supplied as hex.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from clipkeep.errors import ValidationError

KEY_BYTES = 32
NONCE_BYTES = 12


def parse_dek(dek_hex: str) -> bytes:
    try:
        key = bytes.fromhex(dek_hex)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid DEK hex: {exc}") from None
    if len(key) != KEY_BYTES:
        raise ValidationError(f"DEK must be {KEY_BYTES} bytes ({KEY_BYTES * 2} hex chars)")
    return key


def encrypt_text(key: bytes, plaintext: str) -> str:
    nonce = os.urandom(NONCE_BYTES)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return f"{base64.b64encode(nonce).decode('ascii')}:{base64.b64encode(ciphertext).decode('ascii')}"


def decrypt_or_passthrough(key: bytes, text: str) -> str:
    """Decrypt ``text`` if it is an encrypted field, otherwise return it unchanged.

    Anything that does not decode, authenticate or decode as UTF-8 is treated
    as plaintext.
    """
    parts = text.split(":")
    if len(parts) != 2:
        return text
    try:
        nonce = base64.b64decode(parts[0], validate=True)
        ciphertext = base64.b64decode(parts[1], validate=True)
    except binascii.Error:
        return text
    if len(nonce) != NONCE_BYTES:
        return text
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None).decode("utf-8")
    except (InvalidTag, ValueError):
        return text
