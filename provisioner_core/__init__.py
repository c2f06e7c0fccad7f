"""
Provisioner Core Package
========================
Validator identity provisioning primitives.

Provides:
- Version 3 encrypted keystores (scrypt / PBKDF2, AES-128-CTR, Keccak-256 MAC)
- File keystore store tolerant of flat and per-validator layouts
- A resilient chain RPC client: health-checked node selection, rotation,
  exponential backoff
- Validator registration and paginated table reads
"""

__version__ = "0.1.0"
