"""
Scan Engine Package - Collects evidence for a target and scores it.

Quick Start:
    from scan_engine import create_default_engine
    from threat_intel import ScanTarget, TargetType

    async def main():
        async with create_default_engine() as engine:
            result = await engine.scan(ScanTarget(TargetType.URL, "https://example.com"))
            print(result.to_dict())
"""

from scan_engine.engine import (
    ScanEngine,
    ScanResult,
    build_default_registry,
    create_default_engine,
)


__all__ = [
    "ScanEngine",
    "ScanResult",
    "build_default_registry",
    "create_default_engine",
]
