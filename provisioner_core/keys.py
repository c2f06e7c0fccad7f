"""
provisioner_core.keys
---------------------
secp256k1 key handling for the validator chain:

- parse_private_key(): raw 32 bytes or 64-char hex -> bytes
- public key strings in ``PUB_K1_`` and legacy ``EOS`` form
- private key strings in WIF (base58check, 0x80 prefix) and ``PVT_K1_`` form

The keystore ``address`` field is the ``PUB_K1_`` string of the key it holds.
"""

from __future__ import annotations
from typing import Union
import base58
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from Crypto.Hash import RIPEMD160

from .errors import InvalidPrivateKeyError
from .utils import strip_0x

PRIVATE_KEY_LEN = 32
WIF_VERSION = b"\x80"


def ripemd160(data: bytes) -> bytes:
    return RIPEMD160.new(data).digest()


def parse_private_key(data: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        key = bytes(data)
    elif isinstance(data, str):
        hexstr = strip_0x(data)
        if len(hexstr) != PRIVATE_KEY_LEN * 2:
            raise InvalidPrivateKeyError(
                f"Invalid Private Key: expected {PRIVATE_KEY_LEN * 2} hex characters, got {len(hexstr)}"
            )
        try:
            key = bytes.fromhex(hexstr)
        except ValueError:
            raise InvalidPrivateKeyError("Invalid Private Key: not a hex string")
    else:
        raise InvalidPrivateKeyError(f"Invalid Private Key: unsupported type {type(data).__name__}")

    if len(key) != PRIVATE_KEY_LEN:
        raise InvalidPrivateKeyError(f"Invalid Private Key: expected {PRIVATE_KEY_LEN} bytes, got {len(key)}")
    return key


def derive_public_key(private_key: bytes) -> bytes:
    """Compressed (33-byte) SEC1 public key for a raw private key."""
    try:
        sk = ec.derive_private_key(int.from_bytes(private_key, "big"), ec.SECP256K1())
    except ValueError as e:
        raise InvalidPrivateKeyError(f"Invalid Private Key: {e}")
    return sk.public_key().public_bytes(Encoding.X962, PublicFormat.CompressedPoint)


# --------- String encodings ----------
def _k1_checksum(payload: bytes) -> bytes:
    return ripemd160(payload + b"K1")[:4]


def public_key_to_string(public_key: bytes, legacy: bool = False) -> str:
    if legacy:
        return "EOS" + base58.b58encode(public_key + ripemd160(public_key)[:4]).decode("ascii")
    return "PUB_K1_" + base58.b58encode(public_key + _k1_checksum(public_key)).decode("ascii")


def public_key_from_private(private_key: bytes, legacy: bool = False) -> str:
    return public_key_to_string(derive_public_key(private_key), legacy=legacy)


def private_key_to_wif(private_key: bytes) -> str:
    return base58.b58encode_check(WIF_VERSION + private_key).decode("ascii")


def private_key_to_string(private_key: bytes) -> str:
    return "PVT_K1_" + base58.b58encode(private_key + _k1_checksum(private_key)).decode("ascii")


def private_key_from_string(value: str) -> bytes:
    """Decode a WIF or ``PVT_K1_`` private key string."""
    if value.startswith("PVT_K1_"):
        try:
            raw = base58.b58decode(value[len("PVT_K1_"):])
        except ValueError:
            raise InvalidPrivateKeyError("Invalid Private Key: bad base58 encoding")
        key, checksum = raw[:-4], raw[-4:]
        if len(key) != PRIVATE_KEY_LEN or _k1_checksum(key) != checksum:
            raise InvalidPrivateKeyError("Invalid Private Key: checksum mismatch")
        return key

    try:
        raw = base58.b58decode_check(value)
    except ValueError:
        raise InvalidPrivateKeyError("Invalid Private Key: bad WIF checksum")
    # 34 bytes carries the compressed-pubkey flag
    if len(raw) == PRIVATE_KEY_LEN + 2 and raw[-1] == 0x01:
        raw = raw[:-1]
    if len(raw) != PRIVATE_KEY_LEN + 1 or raw[:1] != WIF_VERSION:
        raise InvalidPrivateKeyError("Invalid Private Key: not a WIF key")
    return raw[1:]
