import pytest

from provisioner_core.config import ProvisionerConfig
from provisioner_core.errors import InvalidAddressError
from provisioner_core.names import (
    account_names_from_config, evm_address_to_name, generate_account_names, name_to_evm_address,
    name_to_uint64, number_to_chars, uint64_to_name,
)


def test_known_name_value():
    assert name_to_uint64("eosio") == 0x5530EA0000000000
    assert uint64_to_name(0x5530EA0000000000) == "eosio"


def test_evm_address_roundtrip():
    addr = name_to_evm_address("valid1.sat")
    assert len(addr) == 42
    assert addr.startswith("0x" + "bb" * 12)
    assert evm_address_to_name(addr) == "valid1.sat"
    assert evm_address_to_name(addr.upper().replace("0X", "0x")) == "valid1.sat"


def test_thirteenth_character():
    assert uint64_to_name(name_to_uint64("abcdefghijkl1")) == "abcdefghijkl1"
    with pytest.raises(InvalidAddressError):
        name_to_uint64("abcdefghijklz")


@pytest.mark.parametrize("bad", ["0x1234", "0x" + "aa" * 12 + "5530ea0000000000"])
def test_non_reserved_address_rejected(bad):
    with pytest.raises(InvalidAddressError):
        evm_address_to_name(bad)


def test_invalid_name_characters():
    with pytest.raises(InvalidAddressError):
        name_to_uint64("Valid")


def test_number_to_chars():
    assert number_to_chars(0) == "1"
    assert number_to_chars(30) == "z"
    assert number_to_chars(31) == "21"


def test_generate_account_names():
    assert generate_account_names("valid", ".sat", 3) == ["valid1.sat", "valid2.sat", "valid3.sat"]
    assert len(set(generate_account_names(total=100))) == 100


def test_generate_account_names_length_limit():
    with pytest.raises(InvalidAddressError, match="12 character"):
        generate_account_names("validator", ".sat", 1)


def test_account_names_from_config():
    cfg = ProvisionerConfig(account_prefix="node", account_suffix=".sat", total=2)
    assert account_names_from_config(cfg) == ["node1.sat", "node2.sat"]
