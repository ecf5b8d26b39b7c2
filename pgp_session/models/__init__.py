"""
Domain models for pgp_session.

These are immutable (frozen) dataclasses representing the core domain concepts.
"""

from pgp_session.models.keys import EngineKey, Key, UserId, merge_private_flags
from pgp_session.models.results import (
    DecryptResult,
    EngineInfo,
    OperationResult,
    ProcessOutput,
)
from pgp_session.models.status import ErrorCode, ErrorKind, ErrorSource, Status

__all__ = [
    # Keys
    "EngineKey",
    "Key",
    "UserId",
    "merge_private_flags",
    # Results
    "DecryptResult",
    "EngineInfo",
    "OperationResult",
    "ProcessOutput",
    # Status
    "ErrorCode",
    "ErrorKind",
    "ErrorSource",
    "Status",
]
