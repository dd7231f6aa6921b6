"""
Sub-Analyzers - Interface for the non-vendor evidence producers.

ML inference, network posture probing, and file / VPN-config / social
profile inspection live outside this package. They plug in through
BaseSubAnalyzer and hand back one report per scan.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Union

from threat_intel.models import (
    FileReport,
    InstagramReport,
    MlReport,
    NetworkReport,
    ScanTarget,
    TargetType,
    VpnConfigReport,
)


SubReport = Union[MlReport, NetworkReport, FileReport, VpnConfigReport, InstagramReport]


class AnalyzerKind(str, Enum):
    """Kinds of sub-analyzer, one report type each."""
    ML = "ml"
    NETWORK = "network"
    FILE = "file"
    VPN_CONFIG = "vpn_config"
    INSTAGRAM = "instagram"

    @property
    def report_type(self) -> type:
        return REPORT_TYPES[self]

    @property
    def bundle_field(self) -> str:
        """EvidenceBundle field the report is stored in."""
        return BUNDLE_FIELDS[self]


REPORT_TYPES: dict[AnalyzerKind, type] = {
    AnalyzerKind.ML: MlReport,
    AnalyzerKind.NETWORK: NetworkReport,
    AnalyzerKind.FILE: FileReport,
    AnalyzerKind.VPN_CONFIG: VpnConfigReport,
    AnalyzerKind.INSTAGRAM: InstagramReport,
}

BUNDLE_FIELDS: dict[AnalyzerKind, str] = {
    AnalyzerKind.ML: "ml_report",
    AnalyzerKind.NETWORK: "network_report",
    AnalyzerKind.FILE: "file_report",
    AnalyzerKind.VPN_CONFIG: "vpn_report",
    AnalyzerKind.INSTAGRAM: "instagram_report",
}

DEFAULT_ANALYZERS_BY_TARGET: dict[TargetType, tuple[AnalyzerKind, ...]] = {
    TargetType.URL: (AnalyzerKind.ML, AnalyzerKind.NETWORK),
    TargetType.FILE: (AnalyzerKind.FILE,),
    TargetType.VPN_CONFIG: (AnalyzerKind.VPN_CONFIG,),
    TargetType.INSTAGRAM: (AnalyzerKind.INSTAGRAM,),
}


class BaseSubAnalyzer(ABC):
    """
    Abstract base class for sub-analyzers.

    analyze() returns the report type matching kind, or raises. The collector
    turns any failure, or a report of the wrong type, into an absent report.
    """

    @property
    @abstractmethod
    def kind(self) -> AnalyzerKind:
        pass

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    async def analyze(self, target: ScanTarget) -> SubReport:
        pass

    async def close(self) -> None:
        pass

    def describe(self) -> dict[str, Any]:
        return {"name": self.name, "report_type": self.kind.report_type.__name__}
