"""ModuleRecord — the persisted description of one package, and its JSON codec."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ecograph.models.candidate import Candidate, format_identity

_REQUIRED_STR_FIELDS = ("name", "version", "source_repo", "identity")


@dataclass
class ModuleRecord:
    """One record per package name; written whole or not at all."""

    name: str
    version: str
    authority: str | None
    api: str | None
    source_repo: str
    identity: str
    dependencies: list[str] = field(default_factory=list)
    last_scanned: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    unresolved: bool = False

    @classmethod
    def from_candidate(
        cls,
        candidate: Candidate,
        dependencies: list[str],
        *,
        unresolved: bool = False,
        scanned_at: datetime | None = None,
    ) -> ModuleRecord:
        return cls(
            name=candidate.name,
            version=candidate.version,
            authority=candidate.authority,
            api=candidate.api,
            source_repo=candidate.source_repo,
            identity=candidate.identity,
            dependencies=list(dependencies),
            last_scanned=scanned_at or datetime.now(timezone.utc),
            unresolved=unresolved,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "authority": self.authority,
            "api": self.api,
            "source_repo": self.source_repo,
            "identity": self.identity,
            "dependencies": list(self.dependencies),
            "last_scanned": self.last_scanned.isoformat(),
            "unresolved": self.unresolved,
        }


def encode_record(record: ModuleRecord) -> str:
    return json.dumps(record.to_dict(), sort_keys=True)


def decode_record(payload: str | bytes | None) -> ModuleRecord | None:
    """Parse a stored payload; return None when it is not a well-formed record.

    Older payloads without ``identity`` or ``unresolved`` are accepted: the
    identity is rebuilt from its parts and the record counts as resolved.
    """
    if payload is None:
        return None
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    if not data.get("identity") and isinstance(data.get("name"), str) and isinstance(
        data.get("version"), str
    ):
        data["identity"] = format_identity(
            data["name"], data["version"], data.get("authority"), data.get("api")
        )
    for key in _REQUIRED_STR_FIELDS:
        if not isinstance(data.get(key), str) or not data[key]:
            return None
    for key in ("authority", "api"):
        if data.get(key) is not None and not isinstance(data[key], str):
            return None

    deps = data.get("dependencies", [])
    if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
        return None

    scanned_raw = data.get("last_scanned")
    try:
        last_scanned = datetime.fromisoformat(scanned_raw) if scanned_raw else None
    except (TypeError, ValueError):
        return None
    if last_scanned is not None and last_scanned.tzinfo is None:
        last_scanned = last_scanned.replace(tzinfo=timezone.utc)

    return ModuleRecord(
        name=data["name"],
        version=data["version"],
        authority=data.get("authority"),
        api=data.get("api"),
        source_repo=data["source_repo"],
        identity=data["identity"],
        dependencies=list(deps),
        last_scanned=last_scanned or datetime.fromtimestamp(0, timezone.utc),
        unresolved=bool(data.get("unresolved", False)),
    )
