"""
Threat Intel Configuration.

Credentials come from the environment (a local .env file is loaded first).
Slot chains, analyzer selection and timeouts come from defaults, the
environment, or a YAML file.

Environment variables:
    VIRUSTOTAL_API_KEY
    GOOGLE_SAFE_BROWSING_API_KEY
    URLSCAN_API_KEY
    ABUSE_CH_AUTH_KEY              (URLhaus and ThreatFox, optional)
    SCAN_BRANCH_TIMEOUT_SECONDS    (0 disables the per-branch timeout)
    SCAN_HTTP_TIMEOUT_SECONDS
    SCAN_CONFIG_PATH               (YAML file, see CollectorConfig.from_yaml)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from dotenv import load_dotenv

from threat_intel.analyzers import DEFAULT_ANALYZERS_BY_TARGET, AnalyzerKind
from threat_intel.fallback import SlotDefinition, default_slot
from threat_intel.models import Provider, TargetType


logger = logging.getLogger(__name__)


DEFAULT_URL_SLOTS: tuple[Provider, ...] = (
    Provider.VIRUS_TOTAL,
    Provider.GOOGLE_SAFE_BROWSING,
    Provider.URL_SCAN,
    Provider.URL_HAUS,
    Provider.PHISH_STATS,
    Provider.THREAT_FOX,
)


def _default_slots() -> dict[TargetType, tuple[SlotDefinition, ...]]:
    # Non-URL targets get their verdicts from the specialized analyzers
    return {
        TargetType.URL: tuple(default_slot(p) for p in DEFAULT_URL_SLOTS),
        TargetType.FILE: (),
        TargetType.VPN_CONFIG: (),
        TargetType.INSTAGRAM: (),
    }


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


@dataclass(frozen=True)
class ProviderCredentials:
    """API keys for the HTTP providers. Missing keys are None."""
    virustotal_api_key: Optional[str] = None
    google_safe_browsing_api_key: Optional[str] = None
    urlscan_api_key: Optional[str] = None
    abuse_ch_auth_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ProviderCredentials":
        """Load credentials from environment variables."""
        load_dotenv()
        return cls(
            virustotal_api_key=os.getenv("VIRUSTOTAL_API_KEY") or None,
            google_safe_browsing_api_key=os.getenv("GOOGLE_SAFE_BROWSING_API_KEY") or None,
            urlscan_api_key=os.getenv("URLSCAN_API_KEY") or None,
            abuse_ch_auth_key=os.getenv("ABUSE_CH_AUTH_KEY") or None,
        )

    def to_dict(self) -> dict[str, bool]:
        """Which keys are configured. Never exposes the keys themselves."""
        return {
            "virustotal": bool(self.virustotal_api_key),
            "google_safe_browsing": bool(self.google_safe_browsing_api_key),
            "urlscan": bool(self.urlscan_api_key),
            "abuse_ch": bool(self.abuse_ch_auth_key),
        }


@dataclass
class CollectorConfig:
    """
    Verdict collector configuration.

    Attributes:
        slots_by_target: Vendor slots queried for each target type
        analyzers_by_target: Sub-analyzers run for each target type
        branch_timeout_seconds: Upper bound per concurrent branch; None disables it
        http_timeout_seconds: Total timeout of a single provider HTTP request
    """
    slots_by_target: dict[TargetType, tuple[SlotDefinition, ...]] = field(default_factory=_default_slots)
    analyzers_by_target: dict[TargetType, tuple[AnalyzerKind, ...]] = field(
        default_factory=lambda: dict(DEFAULT_ANALYZERS_BY_TARGET)
    )
    branch_timeout_seconds: Optional[float] = 60.0
    http_timeout_seconds: float = 15.0

    def slots_for(self, target_type: TargetType) -> tuple[SlotDefinition, ...]:
        return self.slots_by_target.get(target_type, ())

    def analyzers_for(self, target_type: TargetType) -> tuple[AnalyzerKind, ...]:
        return self.analyzers_by_target.get(target_type, ())

    @classmethod
    def from_env(cls) -> "CollectorConfig":
        """Load configuration from environment variables."""
        load_dotenv()

        path = os.getenv("SCAN_CONFIG_PATH")
        config = cls.from_yaml(Path(path)) if path else cls()

        branch_timeout = _env_float("SCAN_BRANCH_TIMEOUT_SECONDS")
        if branch_timeout is not None:
            config.branch_timeout_seconds = branch_timeout if branch_timeout > 0 else None

        http_timeout = _env_float("SCAN_HTTP_TIMEOUT_SECONDS")
        if http_timeout is not None:
            config.http_timeout_seconds = http_timeout

        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "CollectorConfig":
        """
        Load configuration from YAML file.

        Example:
            branch_timeout_seconds: 30
            http_timeout_seconds: 10
            slots:
              url:
                - primary: virus_total
                  fallbacks: [google_safe_browsing, url_scan]
                - primary: url_haus
            analyzers:
              url: [ml, network]

        Target types absent from the file keep their defaults. An unreadable
        or invalid file yields the default configuration.
        """
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return cls.from_dict(data)
        except (OSError, yaml.YAMLError, KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to load collector config from {path}: {e}")
            return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectorConfig":
        """Build configuration from a plain mapping (see from_yaml for the layout)."""
        config = cls()

        for target_name, slots in (data.get("slots") or {}).items():
            config.slots_by_target[TargetType(target_name)] = tuple(
                SlotDefinition(
                    primary=Provider(slot["primary"]),
                    fallbacks=tuple(Provider(p) for p in slot.get("fallbacks") or ()),
                )
                for slot in slots or ()
            )

        for target_name, kinds in (data.get("analyzers") or {}).items():
            config.analyzers_by_target[TargetType(target_name)] = tuple(
                AnalyzerKind(kind) for kind in kinds or ()
            )

        if "branch_timeout_seconds" in data:
            timeout = data["branch_timeout_seconds"]
            config.branch_timeout_seconds = float(timeout) if timeout else None
        if "http_timeout_seconds" in data:
            config.http_timeout_seconds = float(data["http_timeout_seconds"])

        return config

    def to_dict(self) -> dict[str, Any]:
        return {
            "slots": {
                t.value: [s.to_dict() for s in slots] for t, slots in self.slots_by_target.items()
            },
            "analyzers": {
                t.value: [k.value for k in kinds] for t, kinds in self.analyzers_by_target.items()
            },
            "branch_timeout_seconds": self.branch_timeout_seconds,
            "http_timeout_seconds": self.http_timeout_seconds,
        }
