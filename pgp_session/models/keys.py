"""
Key models: engine-level key records and the value snapshots handed to callers.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, replace

_USER_ID_RE = re.compile(
    r"^(?P<name>[^(<]*?)\s*(?:\((?P<comment>[^)]*)\))?\s*(?:<(?P<email>[^>]*)>)?\s*$"
)


@dataclass(frozen=True, kw_only=True)
class UserId:
    """One user id of a key, split into its parts."""

    name: str = ""
    email: str = ""
    comment: str = ""

    @classmethod
    def parse(cls, raw: str) -> "UserId":
        """
        Split a ``Name (comment) <email>`` user id.

        Args:
            raw: User id as printed by the engine.

        Returns:
            Parsed user id. Unparseable input ends up entirely in ``name``.
        """
        match = _USER_ID_RE.match(raw.strip())
        if match is None:
            return cls(name=raw.strip())
        return cls(
            name=match.group("name") or "",
            email=match.group("email") or "",
            comment=match.group("comment") or "",
        )

    def __str__(self) -> str:
        parts = [self.name] if self.name else []
        if self.comment:
            parts.append(f"({self.comment})")
        if self.email:
            parts.append(f"<{self.email}>")
        return " ".join(parts)


@dataclass(frozen=True, kw_only=True)
class EngineKey:
    """
    Key record as returned by the engine.

    Attributes:
        fingerprint: Primary key fingerprint.
        subkeys: Key ids of the primary key and its subkeys, primary first.
            Empty when the engine returned no subkey information.
        uids: User ids, primary first.
        secret: True when the record came from a secret key listing.
    """

    fingerprint: str
    subkeys: tuple[str, ...] = ()
    uids: tuple[UserId, ...] = ()
    secret: bool = False

    @property
    def key_id(self) -> str | None:
        return self.subkeys[0] if self.subkeys else None

    @property
    def primary_uid(self) -> UserId | None:
        return self.uids[0] if self.uids else None

    def matches(self, key_id: str) -> bool:
        """Check whether ``key_id`` names the primary key or one of its subkeys."""
        wanted = key_id.upper()
        return any(subkey.upper() == wanted for subkey in self.subkeys)


@dataclass(frozen=True, kw_only=True)
class Key:
    """
    Snapshot of a key taken at query time.

    Attributes:
        key_id: Primary key id.
        fingerprint: Primary key fingerprint.
        name: Display name of the primary user id.
        email: Email of the primary user id.
        has_private_part: True when the key store holds the secret key.
    """

    key_id: str
    fingerprint: str = ""
    name: str = ""
    email: str = ""
    has_private_part: bool = False

    @classmethod
    def from_engine_key(cls, record: EngineKey, *, has_private_part: bool = False) -> "Key | None":
        """Snapshot an engine record, or None when it lacks subkey information."""
        if record.key_id is None:
            return None
        uid = record.primary_uid
        return cls(
            key_id=record.key_id,
            fingerprint=record.fingerprint,
            name=uid.name if uid else "",
            email=uid.email if uid else "",
            has_private_part=has_private_part,
        )


def merge_private_flags(keys: list[Key], secret_key_ids: Iterable[str]) -> list[Key]:
    """
    Mark keys whose id appears in ``secret_key_ids`` as having a private part.

    Matching is exact string equality on the key id. Secret ids with no entry
    in ``keys`` are ignored; no entry is ever added.

    Args:
        keys: Result of the all-keys pass, in listing order.
        secret_key_ids: Key ids from the secret-keys pass.

    Returns:
        A new list, same order and length as ``keys``.
    """
    merged = list(keys)
    positions: dict[str, list[int]] = {}
    for index, key in enumerate(merged):
        positions.setdefault(key.key_id, []).append(index)

    for key_id in secret_key_ids:
        for index in positions.get(key_id, ()):
            if not merged[index].has_private_part:
                merged[index] = replace(merged[index], has_private_part=True)
    return merged
