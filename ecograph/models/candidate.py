"""Candidate — one package/version pair parsed from a repository listing."""

from __future__ import annotations

from dataclasses import dataclass


def format_identity(
    name: str,
    version: str,
    authority: str | None = None,
    api: str | None = None,
) -> str:
    """Build ``name:ver<V>[:auth<A>][:api<P>]`` from the fields that are present."""
    parts = [f"{name}:ver<{version}>"]
    if authority:
        parts.append(f"auth<{authority}>")
    if api:
        parts.append(f"api<{api}>")
    return ":".join(parts)


@dataclass(frozen=True)
class Candidate:
    name: str
    version: str
    authority: str | None
    api: str | None
    source_repo: str

    @property
    def identity(self) -> str:
        return format_identity(self.name, self.version, self.authority, self.api)
