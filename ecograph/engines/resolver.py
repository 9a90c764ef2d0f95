"""Dependency resolver adapter — dependency-query tool boundary.

The tool's report is free text. Only dependency-category lines are read:

    Depends: Foo::Bar:ver<1.0>, Baz (optional)
    Build-depends: LibraryMake
    Test-depends: Test::META

Each comma-separated token is cut down to its bare package name. Anything
the tool prints that does not fit this shape is ignored, and a failed or
empty report degrades to "no known dependencies" flagged as unresolved.
"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from ecograph.core.commands import Runner, build_command, run_command
from ecograph.models.candidate import Candidate

log = structlog.get_logger("ecograph.engine")

RUNTIME_CATEGORIES = frozenset({"depends"})
DEEP_CATEGORIES = frozenset({"depends", "build-depends", "test-depends"})

# Ships with the compiler; never an installable distribution.
CORE_NOISE = frozenset(
    {
        "CompUnit::Repository::AbsolutePath",
        "CompUnit::Repository::FileSystem",
        "CompUnit::Repository::Installation",
        "CompUnit::Repository::JVM",
        "CompUnit::Repository::NQP",
        "CompUnit::Repository::Perl5",
        "CompUnit::Repository::Staging",
        "CompUnit::Repository::Unknown",
        "MoarVM",
        "NativeCall",
        "Pod::To::Text",
        "Rakudo",
        "Telemetry",
        "Test",
        "experimental",
        "lib",
        "newline",
        "nqp",
        "perl6",
        "raku",
        "rakudo",
        "snapper",
    }
)

_CATEGORY_RE = re.compile(
    r"^\s*(?P<category>(?:build-|test-)?depends)\s*:\s*(?P<body>.*)$",
    re.IGNORECASE,
)
_PAREN_RE = re.compile(r"\([^)]*\)")
_NAME_RE = re.compile(r"^[^\s:<>(),\"']+(?:::[^\s:<>(),\"']+)*")
_FROM_RE = re.compile(r":from<(?P<from>[^<>]*)>")
_LANGUAGE_FROMS = frozenset({"perl6", "raku"})


@dataclass
class DependencyReport:
    names: list[str] = field(default_factory=list)
    resolved: bool = True
    error: str | None = None


def clean_dependency_token(token: str) -> str | None:
    """Reduce ``Foo::Bar:ver<1.0>:auth<zef:x> (optional)`` to ``Foo::Bar``.

    Returns None for empty tokens and for ``:from<native>``-style
    requirements, which name system libraries or executables.
    """
    token = _PAREN_RE.sub("", token).strip().strip("\"'").strip()
    if not token:
        return None
    from_match = _FROM_RE.search(token)
    if from_match and from_match.group("from").strip().lower() not in _LANGUAGE_FROMS:
        return None
    m = _NAME_RE.match(token)
    return m.group(0) if m else None


def parse_dependency_report(
    text: str,
    own_name: str,
    *,
    deep: bool = True,
    noise: Iterable[str] = CORE_NOISE,
) -> list[str]:
    """Extract deduplicated dependency names from a query report, in first-seen order."""
    categories = DEEP_CATEGORIES if deep else RUNTIME_CATEGORIES
    noise = frozenset(noise)
    seen: set[str] = set()
    names: list[str] = []
    for line in text.splitlines():
        m = _CATEGORY_RE.match(line)
        if not m or m.group("category").lower() not in categories:
            continue
        for token in m.group("body").split(","):
            name = clean_dependency_token(token)
            if not name or name == own_name or name in noise or name in seen:
                continue
            seen.add(name)
            names.append(name)
    return names


class DependencyResolver:
    """Run the dependency-query tool for one package identity at a time."""

    def __init__(
        self,
        command_template: str,
        runner: Runner = subprocess.run,
        *,
        deep: bool = True,
        extra_noise: Iterable[str] = (),
    ) -> None:
        self._template = command_template
        self._runner = runner
        self.deep = deep
        self.noise = CORE_NOISE | frozenset(extra_noise)

    def resolve(self, candidate: Candidate) -> DependencyReport:
        cmd = build_command(self._template, identity=candidate.identity, name=candidate.name)
        out = run_command(cmd, self._runner)
        if not out.ok:
            error = f"exit {out.returncode}: {out.stderr.strip()[:500]}"
            log.warning("resolver.query_failed", identity=candidate.identity, error=error)
            return DependencyReport(resolved=False, error=error)
        if not out.stdout.strip():
            log.warning("resolver.empty_report", identity=candidate.identity)
            return DependencyReport(resolved=False, error="empty report")

        names = parse_dependency_report(
            out.stdout, candidate.name, deep=self.deep, noise=self.noise
        )
        log.debug("resolver.resolved", identity=candidate.identity, dependencies=names)
        return DependencyReport(names=names)
