"""
Shared test fixtures.

Scripted provider and analyzer doubles for exercising the
fallback orchestrator, the collector and the scan engine
without network access.
"""

import asyncio
from typing import Optional

import pytest

from threat_intel.analyzers import AnalyzerKind, BaseSubAnalyzer
from threat_intel.base import BaseThreatIntelProvider
from threat_intel.models import (
    Provider,
    ScanTarget,
    TargetType,
    VendorVerdict,
    VerdictStatus,
)


class FakeProvider(BaseThreatIntelProvider):
    """Provider that returns a fixed result, raises, or sleeps first."""

    def __init__(
        self,
        provider: Provider,
        result: Optional[VendorVerdict] = None,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        targets: tuple = (TargetType.URL,),
    ) -> None:
        self._provider = provider
        self._result = result
        self._error = error
        self._delay = delay
        self.SUPPORTED_TARGETS = targets
        self.calls = 0
        self.closed = False

    @property
    def provider(self) -> Provider:
        return self._provider

    async def query(self, target: ScanTarget) -> Optional[VendorVerdict]:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._result

    async def close(self) -> None:
        self.closed = True


class FakeAnalyzer(BaseSubAnalyzer):
    """Analyzer that returns a fixed report, raises, or sleeps first."""

    def __init__(self, kind: AnalyzerKind, report=None, error: Optional[BaseException] = None, delay: float = 0.0):
        self._kind = kind
        self._report = report
        self._error = error
        self._delay = delay
        self.closed = False

    @property
    def kind(self) -> AnalyzerKind:
        return self._kind

    async def analyze(self, target: ScanTarget):
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._report

    async def close(self) -> None:
        self.closed = True


# ============================================================
# FIXTURES
# ============================================================


@pytest.fixture
def make_provider():
    """Factory for scripted providers."""
    return FakeProvider


@pytest.fixture
def make_analyzer():
    """Factory for scripted sub-analyzers."""
    return FakeAnalyzer


@pytest.fixture
def url_target():
    return ScanTarget(target_type=TargetType.URL, value="https://login-paypa1.example/verify")


@pytest.fixture
def answer():
    """Build a verdict for a provider."""
    def _answer(provider: Provider, status: VerdictStatus, score: float = 0.0, **details) -> VendorVerdict:
        return VendorVerdict(provider=provider, status=status, score=score, details=details)
    return _answer
