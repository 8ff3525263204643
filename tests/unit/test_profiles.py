"""Unit tests for site profiles."""

import pytest

from clearpage.profiles import (
    DEFAULT_PROFILE,
    ArchivePolicy,
    SiteProfile,
    StrategyId,
    build_profile_table,
    get_profile,
)


class TestGetProfile:
    """Tests for profile lookup."""

    @pytest.mark.parametrize(
        "target",
        [
            "https://www.nytimes.com/2024/01/01/world/story.html",
            "https://cooking.nytimes.com/recipes/1",
            "NYTIMES.COM",
        ],
    )
    def test_nytimes_hosts(self, target: str) -> None:
        """Hosts and subdomains of a profiled domain share its profile."""
        assert get_profile(target).name == "nytimes"

    def test_wsj_prefers_older_snapshots(self) -> None:
        """The wsj profile only uses the archive, oldest snapshots first."""
        profile = get_profile("https://www.wsj.com/articles/x")
        assert profile.strategies == (StrategyId.ARCHIVE,)
        assert profile.archive_policy.prefer == "older"

    def test_unmatched_domain_gets_default(self) -> None:
        """Unknown sites use every strategy."""
        profile = get_profile("https://example.com/post")
        assert profile is DEFAULT_PROFILE
        assert profile.strategies[0] is StrategyId.DIRECT
        assert profile.strategies[-1] is StrategyId.RENDERED

    def test_lookalike_domain_does_not_match(self) -> None:
        """Containment is not enough; the host must end with the profiled domain."""
        assert get_profile("https://notnytimes.com/a").name == "default"


class TestSiteProfile:
    """Tests for SiteProfile validation and flags."""

    def test_default_leniency(self) -> None:
        """Archive and rendered strategies tolerate paywall markers by default."""
        assert DEFAULT_PROFILE.is_lenient(StrategyId.ARCHIVE)
        assert DEFAULT_PROFILE.is_lenient(StrategyId.RENDERED)
        assert not DEFAULT_PROFILE.is_lenient(StrategyId.DIRECT)
        assert not DEFAULT_PROFILE.is_lenient(StrategyId.SEARCH_REFERRER)

    def test_empty_strategies_rejected(self) -> None:
        """A profile must name at least one strategy."""
        with pytest.raises(ValueError, match="no strategies"):
            SiteProfile(name="broken", strategies=())

    def test_duplicate_strategies_rejected(self) -> None:
        """A strategy may appear only once."""
        with pytest.raises(ValueError, match="more than once"):
            SiteProfile(name="dup", strategies=(StrategyId.DIRECT, StrategyId.DIRECT))

    def test_unknown_archive_preference_rejected(self) -> None:
        """Only older/newer preferences exist."""
        with pytest.raises(ValueError):
            ArchivePolicy(prefer="sideways")  # type: ignore[arg-type]

    def test_table_rejects_duplicate_domains(self) -> None:
        """Two profiles cannot claim the same domain."""
        a = SiteProfile(name="a", strategies=(StrategyId.DIRECT,), domains=("example.com",))
        b = SiteProfile(name="b", strategies=(StrategyId.DIRECT,), domains=("www.example.com",))
        with pytest.raises(ValueError, match="claimed by"):
            build_profile_table((a, b))

    def test_table_is_read_only(self) -> None:
        """The profile table cannot be mutated after loading."""
        table = build_profile_table(())
        with pytest.raises(TypeError):
            table["example.com"] = DEFAULT_PROFILE  # type: ignore[index]
