# provisioner_core/storage/__init__.py

from .provider import KeystoreProvider
from .providers.memory_provider import InMemoryKeystoreStore
from .providers.file_provider import FileKeystoreStore


def load_keystore_store(config=None, provider: str = "file") -> KeystoreProvider:
    """
    Factory resolver for selecting the keystore backend.

    For now:
        - file (default), rooted at config.keystore_path
        - memory
    """
    password = config.keystore_password if config is not None else None
    if provider == "memory":
        return InMemoryKeystoreStore(password=password)

    if provider == "file":
        root = config.keystore_path if config is not None else "./keystore_files"
        return FileKeystoreStore(root, password=password)
    raise ValueError(f"Unknown keystore provider: {provider}")


__all__ = [
    "KeystoreProvider",
    "InMemoryKeystoreStore",
    "FileKeystoreStore",
    "load_keystore_store",
]
