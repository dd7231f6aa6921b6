"""
Verdict Collector - Gathers every piece of evidence for one scan concurrently.

Each vendor slot and each sub-analyzer runs as an independent branch. Branch
failures never fail the scan:
- a vendor slot that fails, times out or is cancelled becomes an ERROR verdict
- a sub-analyzer that fails, times out or is cancelled leaves its report absent

Cancelling the scan itself cancels every outstanding branch and propagates.
"""

import asyncio
import logging
from typing import Any, Awaitable, Iterable, Optional

from threat_intel.analyzers import AnalyzerKind, BaseSubAnalyzer, SubReport
from threat_intel.config import CollectorConfig
from threat_intel.exceptions import SubAnalyzerUnavailableError
from threat_intel.fallback import FallbackOrchestrator, SlotDefinition
from threat_intel.models import (
    EvidenceBundle,
    ScanTarget,
    VendorVerdict,
    VerdictStatus,
)


logger = logging.getLogger(__name__)


class VerdictCollector:
    """
    Fans a scan out to vendor slots and sub-analyzers and builds the EvidenceBundle.

    Usage:
        collector = VerdictCollector(
            orchestrator=FallbackOrchestrator(registry),
            analyzers=[MyMlAnalyzer(), MyNetworkProbe()],
        )
        bundle = await collector.collect(ScanTarget(TargetType.URL, "https://example.com"))
    """

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        analyzers: Optional[Iterable[BaseSubAnalyzer]] = None,
        config: Optional[CollectorConfig] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._config = config or CollectorConfig()
        self._analyzers: dict[AnalyzerKind, BaseSubAnalyzer] = {}
        for analyzer in analyzers or ():
            self.register_analyzer(analyzer)

    @property
    def config(self) -> CollectorConfig:
        return self._config

    def register_analyzer(self, analyzer: BaseSubAnalyzer) -> None:
        """Register a sub-analyzer, replacing any analyzer of the same kind."""
        if analyzer.kind in self._analyzers:
            logger.warning(f"Analyzer '{analyzer.name}' already registered, replacing")
        self._analyzers[analyzer.kind] = analyzer

    def get_analyzer(self, kind: AnalyzerKind) -> Optional[BaseSubAnalyzer]:
        return self._analyzers.get(kind)

    async def collect(self, target: ScanTarget) -> EvidenceBundle:
        """
        Collect all evidence for a target.

        Args:
            target: Scan target

        Returns:
            EvidenceBundle with one verdict per configured slot, plus any
            verdict issued by a specialized analyzer

        Raises:
            asyncio.CancelledError: Only when the scan itself is cancelled
        """
        slots = self._config.slots_for(target.target_type)
        kinds = [k for k in self._config.analyzers_for(target.target_type) if k in self._analyzers]

        branches: list[Awaitable[Any]] = [
            self._bounded(self._orchestrator.resolve(slot, target)) for slot in slots
        ]
        branches.extend(
            self._bounded(self._run_analyzer(self._analyzers[kind], target)) for kind in kinds
        )

        results = await asyncio.gather(*branches, return_exceptions=True)
        slot_results = results[:len(slots)]
        analyzer_results = results[len(slots):]

        verdicts: list[VendorVerdict] = []
        for slot, result in zip(slots, slot_results):
            if isinstance(result, (Exception, asyncio.CancelledError)):
                logger.warning(f"[{slot.primary.value}] Slot degraded to ERROR: {result!r}")
                verdicts.append(self._degraded_verdict(slot, result))
            else:
                verdicts.append(result)

        reports: dict[str, SubReport] = {}
        for kind, result in zip(kinds, analyzer_results):
            if isinstance(result, (Exception, asyncio.CancelledError)):
                logger.warning(f"[{kind.value}] Sub-report omitted: {result!r}")
                continue
            reports[kind.bundle_field] = result
            analyzer_verdict = getattr(result, "verdict", None)
            if analyzer_verdict is not None:
                verdicts.append(analyzer_verdict)

        bundle = EvidenceBundle(
            target_type=target.target_type,
            vendor_verdicts=tuple(verdicts),
            **reports,
        )
        logger.debug(
            f"Collected {len(verdicts)} verdicts and {len(reports)} reports "
            f"for {target.target_type.value} target"
        )
        return bundle

    async def _bounded(self, awaitable: Awaitable[Any]) -> Any:
        timeout = self._config.branch_timeout_seconds
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=timeout)

    async def _run_analyzer(self, analyzer: BaseSubAnalyzer, target: ScanTarget) -> SubReport:
        report = await analyzer.analyze(target)
        if not isinstance(report, analyzer.kind.report_type):
            raise SubAnalyzerUnavailableError(
                f"Expected {analyzer.kind.report_type.__name__}, got {type(report).__name__}",
                analyzer=analyzer.name,
            )
        return report

    @staticmethod
    def _degraded_verdict(slot: SlotDefinition, error: BaseException) -> VendorVerdict:
        if isinstance(error, asyncio.CancelledError):
            reason = "cancelled"
        elif isinstance(error, asyncio.TimeoutError):
            reason = "timeout"
        else:
            reason = type(error).__name__
        return VendorVerdict(
            provider=slot.primary,
            status=VerdictStatus.ERROR,
            score=0.0,
            details={"error": reason},
        )

    async def close(self) -> None:
        """Close analyzers and provider clients."""
        for analyzer in self._analyzers.values():
            try:
                await analyzer.close()
            except Exception as e:
                logger.warning(f"[{analyzer.name}] Close failed: {e}")
        await self._orchestrator.registry.close()

    async def __aenter__(self) -> "VerdictCollector":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
