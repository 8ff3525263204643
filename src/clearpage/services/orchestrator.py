"""Retrieval orchestrator: run a profile's strategies until one is accepted."""

from collections.abc import Mapping

from clearpage.config import Settings
from clearpage.models import ClassificationVerdict, Failure, FailureKind, FetchOutcome
from clearpage.profiles import SiteProfile, StrategyId
from clearpage.services.classifier import classify
from clearpage.services.strategies import FetchOptions, StrategyExecutor
from clearpage.utils.debug import HtmlDumper
from clearpage.utils.logging import get_logger

logger = get_logger(__name__)

# Strategies whose non-empty HTML is always handed to extraction.
ALWAYS_ACCEPTED = frozenset({StrategyId.RENDERED})


def rejection(
    strategy: str,
    verdict: ClassificationVerdict,
    profile: SiteProfile,
) -> Failure | None:
    """Apply the acceptance rule to a classified payload.

    Returns:
        None if the payload is accepted, otherwise the failure to record.
    """
    if verdict.empty:
        return Failure(FailureKind.EMPTY_RESPONSE, strategy, "empty HTML received")
    if strategy in ALWAYS_ACCEPTED:
        return None
    indicators = ", ".join(verdict.matched_indicators)
    if verdict.bot_blocked:
        return Failure(FailureKind.BOT_BLOCKED, strategy, f"bot protection detected ({indicators})")
    if verdict.paywalled and not profile.is_lenient(strategy):
        return Failure(FailureKind.PAYWALL_DETECTED, strategy, f"paywall detected ({indicators})")
    return None


class RetrievalOrchestrator:
    """Drives strategy executors in profile order and applies acceptance rules.

    Strategies run one at a time and always in the configured order. Only the
    most recent failure is reported when every strategy is exhausted; earlier
    failures go to the log.
    """

    def __init__(
        self,
        executors: Mapping[StrategyId, StrategyExecutor],
        settings: Settings,
        dumper: HtmlDumper | None = None,
    ) -> None:
        self._executors = dict(executors)
        self._settings = settings
        self._dumper = dumper

    def options_for(self, strategy: StrategyId, profile: SiteProfile) -> FetchOptions:
        timeout = (
            self._settings.render_timeout
            if strategy == StrategyId.RENDERED
            else self._settings.fetch_timeout
        )
        return FetchOptions(
            timeout=timeout,
            max_redirects=self._settings.max_redirects,
            archive_policy=profile.archive_policy,
            site_key=profile.site_key,
        )

    async def retrieve(self, url: str, profile: SiteProfile) -> FetchOutcome:
        """Return the first accepted HTML for ``url``, or the last failure.

        Args:
            url: The article URL.
            profile: Site profile giving the strategy order and leniency.

        Returns:
            A successful FetchOutcome naming the accepted strategy, or a failed
            one carrying the last recorded failure.
        """
        last_failure: Failure | None = None

        for strategy in profile.strategies:
            executor = self._executors.get(strategy)
            if executor is None:
                last_failure = Failure(FailureKind.NETWORK_ERROR, strategy, "no executor registered")
                logger.warning("Strategy unavailable", url=url, strategy=strategy)
                continue

            logger.info("Trying strategy", url=url, strategy=strategy, profile=profile.name)
            outcome = await executor.execute(url, self.options_for(strategy, profile))

            if outcome.failure is not None:
                last_failure = outcome.failure
                logger.warning(
                    "Strategy failed",
                    url=url,
                    strategy=strategy,
                    kind=last_failure.kind,
                    reason=last_failure.message,
                )
                continue

            verdict = classify(outcome.html, profile.site_key)
            if self._dumper and outcome.html:
                self._dumper.dump(outcome.html, url, str(strategy))

            failure = rejection(strategy, verdict, profile)
            if failure is not None:
                last_failure = failure
                logger.warning(
                    "Strategy result rejected",
                    url=url,
                    strategy=strategy,
                    kind=failure.kind,
                    indicators=list(verdict.matched_indicators),
                )
                continue

            logger.info(
                "Strategy result accepted",
                url=url,
                strategy=strategy,
                bot_blocked=verdict.bot_blocked,
                paywalled=verdict.paywalled,
                size=len(outcome.html or ""),
            )
            return outcome

        if last_failure is None:
            last_failure = Failure(FailureKind.NETWORK_ERROR, "orchestrator", "no strategies configured")
        return FetchOutcome(strategy=last_failure.source, failure=last_failure)
