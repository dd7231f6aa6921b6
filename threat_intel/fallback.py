"""
Fallback Orchestrator - Resolves one vendor slot through its provider waterfall.

A slot is a primary provider plus an ordered list of substitutes. The
orchestrator asks the primary first and walks the substitutes only when the
primary fails or has no data. The verdict it returns always names the slot
primary as its provider; when a substitute answered, the verdict is stamped
with which substitute answered and why the primary did not.

resolve() never raises. When every provider in the chain fails it
synthesizes an ERROR verdict marked as exhausted.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from threat_intel.exceptions import (
    AllProvidersExhaustedError,
    RateLimitError,
    ThreatIntelError,
)
from threat_intel.models import (
    EXHAUSTED_KEY,
    FALLBACK_PROVIDER_KEY,
    FALLBACK_REASON_KEY,
    FallbackReason,
    Provider,
    ScanTarget,
    VendorVerdict,
    VerdictStatus,
)
from threat_intel.registry import ProviderRegistry


logger = logging.getLogger(__name__)


FallbackCallback = Callable[[Provider, Provider, FallbackReason], None]


@dataclass(frozen=True)
class SlotDefinition:
    """A primary provider and its ordered fallback chain."""
    primary: Provider
    fallbacks: tuple[Provider, ...] = ()

    def __post_init__(self) -> None:
        # A provider appears at most once per chain
        seen = {self.primary}
        chain = []
        for provider in self.fallbacks:
            if provider not in seen:
                seen.add(provider)
                chain.append(provider)
        object.__setattr__(self, "fallbacks", tuple(chain))

    @property
    def chain(self) -> tuple[Provider, ...]:
        return (self.primary,) + self.fallbacks

    def to_dict(self) -> dict[str, object]:
        return {
            "primary": self.primary.value,
            "fallbacks": [p.value for p in self.fallbacks],
        }


DEFAULT_FALLBACK_CHAINS: dict[Provider, tuple[Provider, ...]] = {
    Provider.VIRUS_TOTAL: (Provider.GOOGLE_SAFE_BROWSING, Provider.URL_SCAN, Provider.THREAT_FOX),
    Provider.GOOGLE_SAFE_BROWSING: (Provider.URL_SCAN, Provider.URL_HAUS, Provider.PHISH_STATS),
    Provider.URL_SCAN: (Provider.VIRUS_TOTAL, Provider.GOOGLE_SAFE_BROWSING, Provider.PHISH_STATS),
    Provider.URL_HAUS: (Provider.THREAT_FOX, Provider.PHISH_STATS),
    Provider.PHISH_STATS: (Provider.URL_HAUS, Provider.THREAT_FOX),
    Provider.THREAT_FOX: (Provider.PHISH_STATS, Provider.URL_HAUS),
    Provider.LOCAL_HEURISTIC: (),
}


def default_slot(primary: Provider) -> SlotDefinition:
    """Slot for a primary using the default fallback chain."""
    return SlotDefinition(primary=primary, fallbacks=DEFAULT_FALLBACK_CHAINS.get(primary, ()))


class FallbackOrchestrator:
    """
    Runs provider waterfalls for vendor slots.

    Rules:
    - Primary verdict (including UNKNOWN) -> used unchanged
    - Primary raised, answered ERROR, or is not registered -> primary_unavailable
    - Primary throttled -> rate_limited
    - Primary had no data -> no_results
    - First substitute with a non-ERROR verdict wins
    - Nobody answered -> ERROR verdict with allProvidersExhausted

    Usage:
        orchestrator = FallbackOrchestrator(registry)
        verdict = await orchestrator.resolve(default_slot(Provider.VIRUS_TOTAL), target)
    """

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry
        self._on_fallback_callbacks: list[FallbackCallback] = []

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def on_fallback(self, callback: FallbackCallback) -> None:
        """Register callback for fallbacks (primary, substitute, reason)."""
        self._on_fallback_callbacks.append(callback)

    async def resolve(self, slot: SlotDefinition, target: ScanTarget) -> VendorVerdict:
        """
        Resolve a slot to exactly one verdict.

        Args:
            slot: Primary and fallback chain
            target: Scan target

        Returns:
            VendorVerdict whose provider is slot.primary

        Note:
            Never raises, except when the enclosing scan is cancelled
        """
        try:
            return await self._run_chain(slot, target)
        except AllProvidersExhaustedError as e:
            logger.error(f"All providers exhausted for slot {slot.primary.value}: {e.attempted_providers}")
            return VendorVerdict(
                provider=slot.primary,
                status=VerdictStatus.ERROR,
                score=0.0,
                details={EXHAUSTED_KEY: "true"},
            )

    async def _run_chain(self, slot: SlotDefinition, target: ScanTarget) -> VendorVerdict:
        verdict, reason = await self._attempt(slot.primary, target)
        if verdict is not None:
            if verdict.provider != slot.primary:
                verdict = dataclasses.replace(verdict, provider=slot.primary)
            logger.debug(f"[{slot.primary.value}] Resolved by primary: {verdict.status.value}")
            return verdict

        attempted = [slot.primary.value]
        for substitute in slot.fallbacks:
            attempted.append(substitute.value)
            substitute_verdict, _ = await self._attempt(substitute, target)
            if substitute_verdict is None:
                continue

            self._on_fallback(slot.primary, substitute, reason)
            details = dict(substitute_verdict.details)
            details[FALLBACK_PROVIDER_KEY] = substitute.value
            details[FALLBACK_REASON_KEY] = reason.value
            return VendorVerdict(
                provider=slot.primary,
                status=substitute_verdict.status,
                score=substitute_verdict.score,
                details=details,
            )

        raise AllProvidersExhaustedError(
            f"No provider answered for slot {slot.primary.value}",
            attempted_providers=attempted,
        )

    async def _attempt(
        self,
        provider: Provider,
        target: ScanTarget,
    ) -> tuple[Optional[VendorVerdict], Optional[FallbackReason]]:
        """Ask one provider. Returns (verdict, None) on an answer, (None, reason) otherwise."""
        client = self._registry.get(provider)
        if client is None:
            logger.debug(f"[{provider.value}] Not registered")
            return None, FallbackReason.PRIMARY_UNAVAILABLE
        if not client.supports(target.target_type):
            logger.debug(f"[{provider.value}] Does not support {target.target_type.value} targets")
            return None, FallbackReason.PRIMARY_UNAVAILABLE

        try:
            verdict = await client.query(target)
        except RateLimitError as e:
            logger.warning(f"[{provider.value}] Rate limited: {e}")
            return None, FallbackReason.RATE_LIMITED
        except ThreatIntelError as e:
            logger.warning(f"[{provider.value}] Failed: {e}")
            return None, FallbackReason.PRIMARY_UNAVAILABLE
        except Exception as e:
            logger.warning(f"[{provider.value}] Unexpected error: {e!r}")
            return None, FallbackReason.PRIMARY_UNAVAILABLE

        if verdict is None:
            logger.info(f"[{provider.value}] No results")
            return None, FallbackReason.NO_RESULTS
        if verdict.status == VerdictStatus.ERROR:
            logger.warning(f"[{provider.value}] Answered with ERROR status")
            return None, FallbackReason.PRIMARY_UNAVAILABLE
        return verdict, None

    def _on_fallback(self, primary: Provider, substitute: Provider, reason: FallbackReason) -> None:
        logger.warning(f"Fallback: {primary.value} -> {substitute.value} ({reason.value})")
        for callback in self._on_fallback_callbacks:
            try:
                callback(primary, substitute, reason)
            except Exception as e:
                logger.error(f"Fallback callback error: {e}")
