from typing import Dict
from provisioner_core.errors import KeystoreConflictError, KeystoreNotFoundError
from provisioner_core.keystore import KeystoreRecord
from provisioner_core.storage.provider import KeystoreProvider

class InMemoryKeystoreStore(KeystoreProvider):
    def __init__(self, password=None):
        self.records: Dict[str, dict] = {}
        self.password = password

    def exists(self, identity: str) -> bool:
        return identity in self.records

    def load(self, identity: str) -> KeystoreRecord:
        if identity not in self.records:
            raise KeystoreNotFoundError(identity, [f"memory:{identity}"])
        # stored as plain dicts so callers never share a mutable record
        return KeystoreRecord.from_dict(self.records[identity])

    def save(self, identity: str, record: KeystoreRecord, overwrite: bool = False):
        if identity in self.records and not overwrite:
            raise KeystoreConflictError(f"memory:{identity}")
        self.records[identity] = record.to_dict()
        return f"memory:{identity}"
