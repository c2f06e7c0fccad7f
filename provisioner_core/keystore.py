"""
provisioner_core.keystore
-------------------------
Version 3 keystore codec: the JSON envelope that holds one password-encrypted
validator private key.

    {
      "version": 3, "id": "<uuid4>", "address": "PUB_K1_...",
      "username": "...", "role": "...",
      "crypto": {
        "cipher": "aes-128-ctr", "ciphertext": "<hex>",
        "cipherparams": {"iv": "<hex>"},
        "kdf": "scrypt" | "pbkdf2", "kdfparams": {...},
        "mac": "<hex keccak256(dk[16:32] || ciphertext)>"
      }
    }

encode() builds a record from a raw key; decode() re-derives the key,
verifies the MAC and returns the raw private key bytes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import json

from .crypto import (
    IV_LEN, KdfParams, Password, aes_128_ctr, compute_mac, derive_key,
    kdf_params_from_dict, make_kdf_params, new_iv, verify_mac,
)
from .errors import DecryptionError, InvalidKdfError, InvalidPrivateKeyError, KeystoreFormatError
from .keys import PRIVATE_KEY_LEN, derive_public_key, parse_private_key, public_key_to_string
from .utils import from_hex, new_id, to_hex

KEYSTORE_VERSION = 3
CIPHER = "aes-128-ctr"


@dataclass
class CryptoSection:
    ciphertext: bytes
    iv: bytes
    kdfparams: KdfParams
    mac: bytes
    cipher: str = CIPHER

    @property
    def kdf(self) -> str:
        return self.kdfparams.kdf

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ciphertext": to_hex(self.ciphertext),
            "cipherparams": {"iv": to_hex(self.iv)},
            "cipher": self.cipher,
            "kdf": self.kdf,
            "kdfparams": self.kdfparams.to_dict(),
            "mac": to_hex(self.mac),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CryptoSection":
        cipher = data["cipher"]
        if cipher != CIPHER:
            raise KeystoreFormatError(f"Unsupported cipher: {cipher}")
        iv = from_hex(data["cipherparams"]["iv"])
        if len(iv) != IV_LEN:
            raise KeystoreFormatError(f"Invalid iv length: {len(iv)}")
        ciphertext = from_hex(data["ciphertext"])
        if len(ciphertext) != PRIVATE_KEY_LEN:
            raise KeystoreFormatError(f"Invalid ciphertext length: {len(ciphertext)}")
        # branch on the stored tag only
        try:
            kdfparams = kdf_params_from_dict(data["kdf"], data["kdfparams"])
        except InvalidKdfError as e:
            raise KeystoreFormatError(str(e))
        return cls(
            ciphertext=ciphertext,
            iv=iv,
            kdfparams=kdfparams,
            mac=from_hex(data["mac"]),
            cipher=cipher,
        )


@dataclass
class KeystoreRecord:
    crypto: CryptoSection
    address: str = ""
    username: str = ""
    role: str = ""
    id: str = field(default_factory=new_id)
    version: int = KEYSTORE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "id": self.id,
            "address": self.address,
            "username": self.username,
            "role": self.role,
            "crypto": self.crypto.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeystoreRecord":
        if not isinstance(data, dict):
            raise KeystoreFormatError("Keystore must be a JSON object")
        version = data.get("version")
        if version != KEYSTORE_VERSION or isinstance(version, bool):
            raise KeystoreFormatError(f"Unsupported keystore version: {version!r}")
        try:
            crypto = CryptoSection.from_dict(data["crypto"])
        except (KeyError, TypeError, ValueError) as e:
            raise KeystoreFormatError(f"Malformed crypto section: {e!r}")
        return cls(
            crypto=crypto,
            address=data.get("address", ""),
            username=data.get("username", ""),
            role=data.get("role", ""),
            id=data.get("id") or new_id(),
            version=version,
        )

    @classmethod
    def from_json(cls, text: str) -> "KeystoreRecord":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise KeystoreFormatError(f"Keystore is not valid JSON: {e}")
        return cls.from_dict(data)


def encode(
    private_key: Union[bytes, str],
    password: Password,
    username: str = "",
    role: str = "",
    kdf: str = "scrypt",
    salt: Optional[bytes] = None,
    iv: Optional[bytes] = None,
    **kdf_options,
) -> KeystoreRecord:
    """
    Encrypt a 32-byte private key into a version 3 keystore record.

    ``salt`` and ``iv`` are random unless supplied; ``kdf_options`` override
    the scrypt (n, r, p, dklen) or pbkdf2 (c, dklen) defaults.
    """
    key = parse_private_key(private_key)
    iv = new_iv(iv)
    params = make_kdf_params(kdf, salt=salt, **kdf_options)

    derived = derive_key(password, params)
    ciphertext = aes_128_ctr(derived, iv, key)

    return KeystoreRecord(
        crypto=CryptoSection(
            ciphertext=ciphertext,
            iv=iv,
            kdfparams=params,
            mac=compute_mac(derived, ciphertext),
        ),
        address=public_key_to_string(derive_public_key(key)),
        username=username,
        role=role,
    )


def decode(record: Union[KeystoreRecord, Dict[str, Any]], password: Password, verify_address: bool = True) -> bytes:
    """
    Decrypt a keystore record and return the raw private key.

    Any MAC mismatch raises DecryptionError without saying whether the
    password or the file is at fault. With ``verify_address`` the decrypted
    key must also match a non-empty ``address``; the MAC does not cover the
    IV, so this is what catches a tampered IV.
    """
    if not isinstance(record, KeystoreRecord):
        record = KeystoreRecord.from_dict(record)

    section = record.crypto
    derived = derive_key(password, section.kdfparams)
    if not verify_mac(derived, section.ciphertext, section.mac):
        raise DecryptionError()

    key = aes_128_ctr(derived, section.iv, section.ciphertext)
    if verify_address and record.address and not _address_matches(key, record.address):
        raise DecryptionError()
    return key


def _address_matches(key: bytes, address: str) -> bool:
    try:
        public_key = derive_public_key(key)
    except InvalidPrivateKeyError:
        return False
    return address in (public_key_to_string(public_key), public_key_to_string(public_key, legacy=True))
