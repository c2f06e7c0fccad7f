from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from Crypto.Hash import keccak
import hmac, os

from .errors import (
    InvalidKdfError, InvalidPasswordError, IVLengthError,
    KeyDerivationError, PBKDF2IterationsError,
)
from .utils import from_hex, to_hex

"""
provisioner_core.crypto
-----------------------
Key derivation and symmetric cipher primitives for the keystore:

- scrypt / PBKDF2-HMAC-SHA256: password + salt -> 32-byte derived key
- AES-128-CTR keyed by derived-key bytes 0..16
- Keccak-256 MAC over derived-key bytes 16..32 || ciphertext

Pure functions, no I/O.
"""

DKLEN = 32
SALT_LEN = 32
IV_LEN = 16
PBKDF2_MIN_ITERATIONS = 100_000

Password = Union[str, bytes]


# --------- KDF parameter sets ----------
@dataclass
class ScryptParams:
    salt: bytes = field(default_factory=lambda: os.urandom(SALT_LEN))
    n: int = 8192
    r: int = 8
    p: int = 1
    dklen: int = DKLEN
    kdf: str = field(default="scrypt", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"dklen": self.dklen, "n": self.n, "p": self.p, "r": self.r, "salt": to_hex(self.salt)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScryptParams":
        return cls(salt=from_hex(d["salt"]), n=int(d["n"]), r=int(d["r"]), p=int(d["p"]), dklen=int(d["dklen"]))


@dataclass
class Pbkdf2Params:
    salt: bytes = field(default_factory=lambda: os.urandom(SALT_LEN))
    c: int = 600_000
    dklen: int = DKLEN
    prf: str = "hmac-sha256"
    kdf: str = field(default="pbkdf2", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"c": self.c, "dklen": self.dklen, "prf": self.prf, "salt": to_hex(self.salt)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Pbkdf2Params":
        return cls(salt=from_hex(d["salt"]), c=int(d["c"]), dklen=int(d["dklen"]), prf=d.get("prf", "hmac-sha256"))


KdfParams = Union[ScryptParams, Pbkdf2Params]

_KDFS = {"scrypt": ScryptParams, "pbkdf2": Pbkdf2Params}


def make_kdf_params(kdf: str = "scrypt", salt: Optional[bytes] = None, **options) -> KdfParams:
    """Resolve a KDF choice plus optional overrides into a concrete parameter set."""
    try:
        cls = _KDFS[kdf]
    except KeyError:
        raise InvalidKdfError(f"Unsupported kdf: {kdf}")
    if salt is not None:
        options["salt"] = salt
    try:
        return cls(**options)
    except TypeError as e:
        raise InvalidKdfError(f"Invalid {kdf} parameters: {e}")


def kdf_params_from_dict(kdf: str, d: Dict[str, Any]) -> KdfParams:
    try:
        cls = _KDFS[kdf]
    except KeyError:
        raise InvalidKdfError(f"Unsupported kdf: {kdf}")
    return cls.from_dict(d)


# --------- Key derivation ----------
def password_bytes(password: Password) -> bytes:
    # strings are taken as raw UTF-8, no normalization
    if isinstance(password, str):
        return password.encode("utf-8")
    if isinstance(password, (bytes, bytearray)):
        return bytes(password)
    raise InvalidPasswordError("Password must be str or bytes")


def scrypt(password: Password, salt: bytes, n: int = 8192, r: int = 8, p: int = 1, dklen: int = DKLEN) -> bytes:
    try:
        kdf = Scrypt(salt=salt, length=dklen, n=n, r=r, p=p)
        return kdf.derive(password_bytes(password))
    except (ValueError, TypeError, MemoryError, UnsupportedAlgorithm) as e:
        raise KeyDerivationError(f"scrypt failed: {e}")


def pbkdf2_hmac_sha256(password: Password, salt: bytes, iterations: int = 600_000, dklen: int = DKLEN) -> bytes:
    if iterations < PBKDF2_MIN_ITERATIONS:
        raise PBKDF2IterationsError(
            f"PBKDF2 requires at least {PBKDF2_MIN_ITERATIONS} iterations, got {iterations}"
        )
    try:
        kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=dklen, salt=salt, iterations=iterations)
        return kdf.derive(password_bytes(password))
    except (ValueError, TypeError) as e:
        raise KeyDerivationError(f"pbkdf2 failed: {e}")


def derive_key(password: Password, params: KdfParams) -> bytes:
    if params.dklen < DKLEN:
        raise InvalidKdfError(f"dklen must be at least {DKLEN}, got {params.dklen}")
    if isinstance(params, ScryptParams):
        return scrypt(password, params.salt, params.n, params.r, params.p, params.dklen)
    if isinstance(params, Pbkdf2Params):
        if params.prf != "hmac-sha256":
            raise InvalidKdfError(f"Unsupported pbkdf2 prf: {params.prf}")
        return pbkdf2_hmac_sha256(password, params.salt, params.c, params.dklen)
    raise InvalidKdfError(f"Unsupported kdf parameters: {type(params).__name__}")


# --------- AES-128-CTR ----------
def new_iv(iv: Optional[bytes] = None) -> bytes:
    if iv is None:
        return os.urandom(IV_LEN)
    if len(iv) != IV_LEN:
        raise IVLengthError(f"IV must be {IV_LEN} bytes, got {len(iv)}")
    return bytes(iv)


def aes_128_ctr(derived_key: bytes, iv: bytes, data: bytes) -> bytes:
    """CTR is symmetric: the same call encrypts and decrypts."""
    iv = new_iv(iv)
    cipher = Cipher(algorithms.AES(derived_key[:16]), modes.CTR(iv))
    ctx = cipher.encryptor()
    return ctx.update(data) + ctx.finalize()


# --------- MAC ----------
def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def compute_mac(derived_key: bytes, ciphertext: bytes) -> bytes:
    return keccak256(derived_key[16:32] + ciphertext)


def verify_mac(derived_key: bytes, ciphertext: bytes, mac: bytes) -> bool:
    return hmac.compare_digest(compute_mac(derived_key, ciphertext), mac)
