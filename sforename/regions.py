from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional


# Title id prefix -> region; read-only, shared by all workers
REGIONS: Mapping[str, str] = MappingProxyType(
    {
        "PCSB": "EUR", "VCES": "EUR", "VLES": "EUR", "PCSF": "EUR",
        "PCSE": "USA", "PCSA": "USA", "PCSD": "USA", "VCUS": "USA", "VLUS": "USA",
        "PCSG": "JAP", "PCSC": "JAP", "VCJS": "JAP", "VLJM": "JAP", "VLJS": "JAP",
        "PCSH": "ASIA", "VCAS": "ASIA", "VLAS": "ASIA",
    }
)


def lookup_region(title_id: str) -> Optional[str]:
    """Return the region mapped to the first four characters of ``title_id``, or None."""
    return REGIONS.get(title_id[:4])
