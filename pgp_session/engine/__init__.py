"""
OpenPGP engine access.

This module provides:
- The engine protocol the session services are written against
- An in-memory data handle
- The GnuPG implementation (python-gnupg)
"""

from pgp_session.engine.gnupg_engine import GnupgEngine
from pgp_session.engine.memory_data import MemoryData
from pgp_session.engine.protocol import DataHandle, Engine, PassphraseCallback

__all__ = [
    "DataHandle",
    "Engine",
    "GnupgEngine",
    "MemoryData",
    "PassphraseCallback",
]
