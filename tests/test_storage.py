import os
import stat
import pytest

from provisioner_core.config import ProvisionerConfig
from provisioner_core.errors import (
    DecryptionError, InvalidPasswordError, KeystoreConflictError, KeystoreNotFoundError,
)
from provisioner_core.keystore import encode
from provisioner_core.storage import FileKeystoreStore, InMemoryKeystoreStore, load_keystore_store

KEY = bytes(range(1, 33))


def _record(identity="valid1.sat"):
    return encode(KEY, "pw", identity, "xsat_validator", n=1024)


def test_save_flat_layout_owner_only(tmp_path):
    store = FileKeystoreStore(tmp_path / "ks")
    path = store.save("valid1.sat", _record())
    assert path == tmp_path / "ks" / "valid1.sat_keystore.json"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert store.locate("valid1.sat") == path
    assert store.load_private_key("valid1.sat", "pw") == KEY


def test_locate_nested_layout(tmp_path):
    store = FileKeystoreStore(tmp_path)
    nested = tmp_path / "valid2.sat" / "valid2.sat_keystore.json"
    nested.parent.mkdir()
    nested.write_text(_record("valid2.sat").to_json(), encoding="utf-8")

    assert store.locate("valid2.sat") == nested
    assert store.load("valid2.sat").username == "valid2.sat"


def test_flat_layout_wins_over_nested(tmp_path):
    store = FileKeystoreStore(tmp_path)
    flat = store.save("valid3.sat", _record("valid3.sat"))
    nested = tmp_path / "valid3.sat" / "valid3.sat_keystore.json"
    nested.parent.mkdir()
    nested.write_text("{}", encoding="utf-8")
    assert store.locate("valid3.sat") == flat


def test_not_found_names_both_paths(tmp_path):
    store = FileKeystoreStore(tmp_path)
    with pytest.raises(KeystoreNotFoundError) as err:
        store.locate("ghost.sat")
    assert err.value.attempted == [
        tmp_path / "ghost.sat_keystore.json",
        tmp_path / "ghost.sat" / "ghost.sat_keystore.json",
    ]
    assert str(tmp_path / "ghost.sat" / "ghost.sat_keystore.json") in str(err.value)


def test_existing_file_is_a_conflict(tmp_path):
    store = FileKeystoreStore(tmp_path)
    path = store.save("valid1.sat", _record())
    before = path.read_text(encoding="utf-8")

    with pytest.raises(KeystoreConflictError):
        store.save("valid1.sat", _record())
    assert path.read_text(encoding="utf-8") == before

    store.save("valid1.sat", _record(), overwrite=True)
    assert path.read_text(encoding="utf-8") != before


def test_nested_file_blocks_flat_save(tmp_path):
    store = FileKeystoreStore(tmp_path)
    nested = tmp_path / "valid4.sat" / "valid4.sat_keystore.json"
    nested.parent.mkdir()
    nested.write_text(_record("valid4.sat").to_json(), encoding="utf-8")
    with pytest.raises(KeystoreConflictError):
        store.save("valid4.sat", _record("valid4.sat"))


def test_create_then_wrong_password(tmp_path):
    store = FileKeystoreStore(tmp_path)
    rec = store.create("valid5.sat", KEY, "pw", role="xsat_validator", kdf="pbkdf2", c=100_000)
    assert rec.username == "valid5.sat"
    assert store.exists("valid5.sat")
    with pytest.raises(DecryptionError):
        store.load_private_key("valid5.sat", "nope")


def test_memory_store():
    store = InMemoryKeystoreStore()
    store.create("valid6.sat", KEY, "pw", n=1024)
    assert store.load_private_key("valid6.sat", "pw") == KEY
    with pytest.raises(KeystoreConflictError):
        store.save("valid6.sat", _record())
    with pytest.raises(KeystoreNotFoundError):
        store.load("ghost.sat")


def test_factory_uses_config_path(tmp_path):
    cfg = ProvisionerConfig(keystore_path=str(tmp_path / "files"))
    store = load_keystore_store(cfg)
    assert isinstance(store, FileKeystoreStore)
    assert store.root == tmp_path / "files"
    assert isinstance(load_keystore_store(cfg, provider="memory"), InMemoryKeystoreStore)
    with pytest.raises(ValueError):
        load_keystore_store(cfg, provider="vault")


def test_configured_password_is_the_default(tmp_path):
    cfg = ProvisionerConfig(keystore_path=str(tmp_path), keystore_password="from-env")
    store = load_keystore_store(cfg)
    store.create("valid7.sat", KEY, n=1024)
    assert store.load_private_key("valid7.sat") == KEY
    assert load_keystore_store(cfg, provider="memory").password == "from-env"
    with pytest.raises(DecryptionError):
        store.load_private_key("valid7.sat", "other")


def test_no_password_anywhere_is_rejected(tmp_path):
    store = FileKeystoreStore(tmp_path)
    with pytest.raises(InvalidPasswordError):
        store.create("valid8.sat", KEY, n=1024)
    assert not store.exists("valid8.sat")
