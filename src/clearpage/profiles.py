"""Site profiles: which strategies to try, in which order, for a domain."""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from types import MappingProxyType
from typing import Literal

from clearpage.utils.urls import get_domain, normalize_domain


class StrategyId(StrEnum):
    """Retrieval techniques, each backed by one strategy executor."""

    DIRECT = "direct"
    SEARCH_REFERRER = "search-referrer"
    ARCHIVE = "archive"
    RENDERED = "rendered"


DEFAULT_LENIENT = frozenset({StrategyId.ARCHIVE, StrategyId.RENDERED})

# Roughly six months.
DEFAULT_ARCHIVE_CUTOFF = timedelta(days=183)


@dataclass(frozen=True)
class ArchivePolicy:
    """Which archived snapshots to visit first."""

    prefer: Literal["older", "newer"] = "newer"
    cutoff: timedelta = DEFAULT_ARCHIVE_CUTOFF

    def __post_init__(self) -> None:
        if self.prefer not in ("older", "newer"):
            raise ValueError(f"unknown archive preference: {self.prefer!r}")


@dataclass(frozen=True)
class SiteProfile:
    """Strategy order, leniency flags and archive policy for a class of domains."""

    name: str
    strategies: tuple[StrategyId, ...]
    domains: tuple[str, ...] = ()
    lenient: frozenset[StrategyId] = DEFAULT_LENIENT
    archive_policy: ArchivePolicy = field(default_factory=ArchivePolicy)
    site_key: str | None = None

    def __post_init__(self) -> None:
        if not self.strategies:
            raise ValueError(f"profile {self.name!r} has no strategies")
        if len(set(self.strategies)) != len(self.strategies):
            raise ValueError(f"profile {self.name!r} lists a strategy more than once")

    def is_lenient(self, strategy: str) -> bool:
        """Whether paywall markers are tolerated in HTML from this strategy."""
        return strategy in self.lenient


DEFAULT_PROFILE = SiteProfile(
    name="default",
    strategies=(
        StrategyId.DIRECT,
        StrategyId.SEARCH_REFERRER,
        StrategyId.ARCHIVE,
        StrategyId.RENDERED,
    ),
)

BUILTIN_PROFILES: tuple[SiteProfile, ...] = (
    SiteProfile(
        name="nytimes",
        domains=("nytimes.com",),
        strategies=(StrategyId.DIRECT, StrategyId.SEARCH_REFERRER, StrategyId.RENDERED),
        site_key="nytimes",
    ),
    # New articles are rarely archived, so start with snapshots older than the cutoff.
    SiteProfile(
        name="wsj",
        domains=("wsj.com",),
        strategies=(StrategyId.ARCHIVE,),
        archive_policy=ArchivePolicy(prefer="older"),
        site_key="wsj",
    ),
)


def build_profile_table(profiles: tuple[SiteProfile, ...]) -> MappingProxyType:
    """Index profiles by normalized domain into a read-only mapping."""
    table: dict[str, SiteProfile] = {}
    for profile in profiles:
        for domain in profile.domains:
            key = normalize_domain(domain)
            if key in table:
                raise ValueError(f"domain {key!r} claimed by {table[key].name!r} and {profile.name!r}")
            table[key] = profile
    return MappingProxyType(table)


PROFILE_TABLE = build_profile_table(BUILTIN_PROFILES)


def get_profile(url_or_domain: str, table: MappingProxyType | None = None) -> SiteProfile:
    """Find the profile for a URL or bare hostname.

    Walks from the full host up through its parent domains, so
    ``cooking.nytimes.com`` matches the ``nytimes.com`` entry. Unmatched
    hosts get the default profile.
    """
    table = PROFILE_TABLE if table is None else table
    host = get_domain(url_or_domain) or url_or_domain
    labels = normalize_domain(host).split(".")
    for i in range(len(labels) - 1):
        profile = table.get(".".join(labels[i:]))
        if profile is not None:
            return profile
    return DEFAULT_PROFILE
