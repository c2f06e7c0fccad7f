# provisioner_core/storage/provider.py
from __future__ import annotations
from typing import Optional, Union

from provisioner_core.crypto import Password
from provisioner_core.errors import InvalidPasswordError
from provisioner_core.keystore import KeystoreRecord, decode, encode


class KeystoreProvider:
    """
    Interface for keystore persistence, one record per identity.

    Backends implement load/save/exists; create() and load_private_key()
    are shared on top of them. ``password`` is the store-wide default used
    when a call does not pass one (KEYSTORE_PASSWORD).
    """

    password: Optional[Password] = None

    def load(self, identity: str) -> KeystoreRecord:
        raise NotImplementedError

    def save(self, identity: str, record: KeystoreRecord, overwrite: bool = False):
        raise NotImplementedError

    def exists(self, identity: str) -> bool:
        raise NotImplementedError

    def create(
        self,
        identity: str,
        private_key: Union[bytes, str],
        password: Optional[Password] = None,
        role: str = "",
        kdf: str = "scrypt",
        salt: Optional[bytes] = None,
        iv: Optional[bytes] = None,
        **kdf_options,
    ) -> KeystoreRecord:
        record = encode(
            private_key, self._password(password), username=identity, role=role,
            kdf=kdf, salt=salt, iv=iv, **kdf_options,
        )
        self.save(identity, record)
        return record

    def load_private_key(self, identity: str, password: Optional[Password] = None) -> bytes:
        return decode(self.load(identity), self._password(password))

    def _password(self, password: Optional[Password]) -> Password:
        if password is None:
            password = self.password
        if password is None:
            raise InvalidPasswordError("No keystore password given and none configured")
        return password
