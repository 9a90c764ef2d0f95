"""Tests for the repository-listing boundary and discover()."""

from __future__ import annotations

import pytest

from ecograph.discovery.listing import RepositoryLister, discover
from ecograph.exceptions import DiscoveryError

_TEMPLATE = "zef list --{repository}"


class TestRepositoryLister:
    def test_invokes_tool_per_repository(self, fake_runner):
        runner = fake_runner(listings={"fez": "Foo:ver<1.0>\n"})
        lister = RepositoryLister(_TEMPLATE, runner)
        candidates = lister.list_repository("fez")
        assert runner.calls == [["zef", "list", "--fez"]]
        assert [c.identity for c in candidates] == ["Foo:ver<1.0>"]
        assert candidates[0].source_repo == "fez"

    def test_failure_returns_none(self, fake_runner):
        lister = RepositoryLister(_TEMPLATE, fake_runner(listings={"fez": None}))
        assert lister.list_repository("fez") is None

    def test_missing_executable_returns_none(self, fake_runner):
        lister = RepositoryLister("no-such-tool {repository}", fake_runner())
        assert lister.list_repository("fez") is None


class TestDiscover:
    def test_priority_order_breaks_ties(self, fake_runner):
        runner = fake_runner(
            listings={
                "fez": "Foo:ver<1.0>:auth<zef:a>\nBar:ver<1.0>\n",
                "cpan": "Foo:ver<1.0>:auth<cpan:B>\nBar:ver<1.5>\n",
            }
        )
        winners = discover(RepositoryLister(_TEMPLATE, runner), ["fez", "cpan"])
        assert winners["Foo"].identity == "Foo:ver<1.0>:auth<zef:a>"
        assert winners["Bar"].source_repo == "cpan"
        assert [c[2] for c in runner.calls] == ["--fez", "--cpan"]

    def test_one_repository_failing_is_tolerated(self, fake_runner):
        runner = fake_runner(listings={"fez": None, "cpan": "Foo:ver<1.0>\n"})
        winners = discover(RepositoryLister(_TEMPLATE, runner), ["fez", "cpan"])
        assert list(winners) == ["Foo"]

    def test_all_repositories_failing_is_fatal(self, fake_runner):
        runner = fake_runner(listings={"fez": None, "cpan": None})
        with pytest.raises(DiscoveryError):
            discover(RepositoryLister(_TEMPLATE, runner), ["fez", "cpan"])

    def test_no_candidates_is_fatal(self, fake_runner):
        runner = fake_runner(listings={"fez": "===> nothing here\n"})
        with pytest.raises(DiscoveryError):
            discover(RepositoryLister(_TEMPLATE, runner), ["fez"])

    def test_strict_rejects_partial_listing(self, fake_runner):
        runner = fake_runner(listings={"fez": None, "cpan": "Foo:ver<1.0>\n"})
        with pytest.raises(DiscoveryError, match="fez"):
            discover(RepositoryLister(_TEMPLATE, runner), ["fez", "cpan"], strict=True)
