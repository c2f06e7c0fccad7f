"""
provisioner_core.names
----------------------
Chain account names: deterministic validator name enumeration and the mapping
between a name and its reserved EVM address.

A name packs 5 bits per character ([.1-5a-z]) into a uint64, most significant
first; a 13th character, if present, fills the low 4 bits. The EVM side sees
that uint64 behind a fixed 12-byte ``bb..bb`` prefix.
"""

from __future__ import annotations
from typing import List

from provisioner_core.errors import InvalidAddressError

EVM_NAME_PREFIX = "0x" + "bb" * 12
MAX_NAME_LEN = 12
DEFAULT_VALID_CHARS = "12345abcdefghijklmnopqrstuvwxyz"


def _char_to_symbol(c: str) -> int:
    if "a" <= c <= "z":
        return ord(c) - ord("a") + 6
    if "1" <= c <= "5":
        return ord(c) - ord("1") + 1
    if c == ".":
        return 0
    raise InvalidAddressError(f"invalid character {c!r} in account name")


def _symbol_to_char(symbol: int) -> str:
    if 6 <= symbol <= 31:
        return chr(symbol - 6 + ord("a"))
    if 1 <= symbol <= 5:
        return chr(symbol - 1 + ord("1"))
    return "."


def name_to_uint64(name: str) -> int:
    if len(name) > MAX_NAME_LEN + 1:
        raise InvalidAddressError(f"account name too long: {name!r}")
    n = 0
    for i, c in enumerate(name[:MAX_NAME_LEN]):
        n |= _char_to_symbol(c) << (64 - 5 * (i + 1))
    if len(name) > MAX_NAME_LEN:
        last = _char_to_symbol(name[MAX_NAME_LEN])
        if last >= 16:
            raise InvalidAddressError("invalid 13th char")
        n |= last
    return n


def uint64_to_name(n: int) -> str:
    chars = [_symbol_to_char((n >> (64 - 5 * (i + 1))) & 0x1F) for i in range(MAX_NAME_LEN)]
    if n & 0xF:
        chars.append(_symbol_to_char(n & 0xF))
    return "".join(chars).rstrip(".")


def name_to_evm_address(name: str) -> str:
    return EVM_NAME_PREFIX + format(name_to_uint64(name), "016x")


def evm_address_to_name(address: str) -> str:
    if len(address) != 42 or not address.lower().startswith(EVM_NAME_PREFIX):
        raise InvalidAddressError(f"not a reserved account address: {address!r}")
    return uint64_to_name(int(address[26:], 16))


# --------- Enumeration ----------
def number_to_chars(num: int, valid_chars: str = DEFAULT_VALID_CHARS) -> str:
    if num == 0:
        return valid_chars[0]
    digits = []
    base = len(valid_chars)
    while num > 0:
        num, remainder = divmod(num, base)
        digits.append(valid_chars[remainder])
    return "".join(reversed(digits))


def generate_account_names(
    prefix: str = "valid",
    suffix: str = ".sat",
    total: int = 10,
    valid_chars: str = DEFAULT_VALID_CHARS,
) -> List[str]:
    accounts = []
    for i in range(total):
        account = f"{prefix}{number_to_chars(i, valid_chars)}{suffix}"
        if len(account) > MAX_NAME_LEN:
            raise InvalidAddressError(f"Account {account} exceeds the {MAX_NAME_LEN} character limit")
        accounts.append(account)
    return accounts


def account_names_from_config(config) -> List[str]:
    return generate_account_names(config.account_prefix, config.account_suffix, config.total, config.valid_chars)
