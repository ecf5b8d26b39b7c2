"""
Session services for pgp_session.
"""

from pgp_session.services.cipher_pipeline import CipherPipeline
from pgp_session.services.gpg_executor import GpgExecutor
from pgp_session.services.key_directory import KeyDirectory
from pgp_session.services.passphrase_broker import PassphraseBroker

__all__ = [
    "CipherPipeline",
    "GpgExecutor",
    "KeyDirectory",
    "PassphraseBroker",
]
