"""Candidate discovery — listing parser, version ordering, arbitration."""

from ecograph.discovery.arbiter import VersionArbiter
from ecograph.discovery.identity import parse_listing, parse_listing_line
from ecograph.discovery.listing import RepositoryLister, discover
from ecograph.discovery.versions import compare_versions, is_newer, version_key

__all__ = [
    "RepositoryLister",
    "VersionArbiter",
    "compare_versions",
    "discover",
    "is_newer",
    "parse_listing",
    "parse_listing_line",
    "version_key",
]
