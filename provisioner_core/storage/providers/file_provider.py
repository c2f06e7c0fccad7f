from __future__ import annotations
from pathlib import Path
from typing import Union
import errno, os

from provisioner_core.errors import KeystoreConflictError, KeystoreNotFoundError
from provisioner_core.keystore import KeystoreRecord
from provisioner_core.logger import get_logger
from provisioner_core.storage.provider import KeystoreProvider

log = get_logger("PROV.Keystore.File")

SUFFIX = "_keystore.json"


class FileKeystoreStore(KeystoreProvider):
    """
    Keystore files under a root directory.

    Two layouts are read:
      <root>/<identity>_keystore.json              (flat, written by provisioning)
      <root>/<identity>/<identity>_keystore.json   (nested, per-validator folders)
    New records are always written flat, owner read/write only.
    """

    def __init__(self, root: Union[str, Path] = "./keystore_files", password=None):
        self.root = Path(root)
        self.password = password

    def flat_path(self, identity: str) -> Path:
        return self.root / f"{identity}{SUFFIX}"

    def nested_path(self, identity: str) -> Path:
        return self.root / identity / f"{identity}{SUFFIX}"

    def candidates(self, identity: str):
        return [self.flat_path(identity), self.nested_path(identity)]

    def locate(self, identity: str) -> Path:
        attempted = self.candidates(identity)
        for path in attempted:
            if path.is_file():
                return path
        raise KeystoreNotFoundError(identity, attempted)

    def exists(self, identity: str) -> bool:
        return any(p.is_file() for p in self.candidates(identity))

    def load(self, identity: str) -> KeystoreRecord:
        path = self.locate(identity)
        log.debug(f"[KEYSTORE] loading {path}")
        return KeystoreRecord.from_json(path.read_text(encoding="utf-8"))

    def save(self, identity: str, record: KeystoreRecord, overwrite: bool = False) -> Path:
        path = self.flat_path(identity)
        if not overwrite:
            for existing in self.candidates(identity):
                if existing.exists():
                    raise KeystoreConflictError(existing)

        self.root.mkdir(parents=True, exist_ok=True)
        flags = os.O_WRONLY | os.O_CREAT | (os.O_TRUNC if overwrite else os.O_EXCL)
        try:
            fd = os.open(path, flags, 0o600)
        except OSError as e:
            if e.errno == errno.EEXIST:
                raise KeystoreConflictError(path)
            raise
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(record.to_json())
        # mode passed to open() is masked by umask, and ignored for an existing file
        os.chmod(path, 0o600)

        log.info(f"[KEYSTORE] saved {path}")
        return path
