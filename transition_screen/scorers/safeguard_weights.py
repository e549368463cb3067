"""Safeguard Weight Registry - per-sector objective weights for DNSH scoring.

Maps project sectors to weight profiles over the six safeguard objectives.
Objectives without an explicit weight count 1.0.

Usage:
    from transition_screen.scorers.safeguard_weights import get_sector_weights

    weights = get_sector_weights(Sector.MINING)
    # weights.weight_for(SafeguardObjective.WATER_RESOURCES) == 1.5
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from transition_screen.schemas.common import SafeguardObjective, Sector

logger = logging.getLogger(__name__)

DEFAULT_OBJECTIVE_WEIGHT = 1.0

# Used when the YAML config is missing
DEFAULT_SECTOR_WEIGHTS: dict[str, dict[str, float]] = {
    "energy": {"climate_mitigation": 1.5, "pollution_prevention": 1.2},
    "mining": {"water_resources": 1.5, "biodiversity": 1.5, "pollution_prevention": 1.3},
    "agriculture": {"water_resources": 1.3, "biodiversity": 1.5, "circular_economy": 1.2},
    "transport": {"climate_mitigation": 1.3, "pollution_prevention": 1.2},
    "manufacturing": {"pollution_prevention": 1.3, "circular_economy": 1.3, "water_resources": 1.2},
}


@dataclass
class SectorWeights:
    """Safeguard objective weights for a single sector."""

    sector: str
    description: str = ""
    weights: dict[str, float] = field(default_factory=dict)
    default_weight: float = DEFAULT_OBJECTIVE_WEIGHT

    def weight_for(self, objective: SafeguardObjective) -> float:
        return self.weights.get(objective.value, self.default_weight)


# Module-level cache
_registry_cache: Optional[dict] = None


def _get_config_path() -> Path:
    return Path(__file__).parent.parent / "rubrics" / "safeguard_weights.yaml"


def _load_registry() -> dict:
    """Load and cache sector weight profiles from YAML."""
    global _registry_cache
    if _registry_cache is not None:
        return _registry_cache

    config_path = _get_config_path()
    if not config_path.exists():
        logger.warning(f"Safeguard weights config not found at {config_path}, using defaults")
        _registry_cache = _build_default_registry()
        return _registry_cache

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    default_weight = float(raw.get("default_weight", DEFAULT_OBJECTIVE_WEIGHT))
    sectors: dict[str, SectorWeights] = {}
    for name, data in raw.get("sectors", {}).items():
        weights = {k: float(v) for k, v in (data.get("weights") or {}).items()}
        _validate_weights(name, weights)
        sectors[name] = SectorWeights(
            sector=name,
            description=data.get("description", ""),
            weights=weights,
            default_weight=default_weight,
        )

    _registry_cache = {"sectors": sectors, "default_weight": default_weight}
    logger.debug(f"Loaded safeguard weights for {len(sectors)} sectors")
    return _registry_cache


def _build_default_registry() -> dict:
    sectors = {
        name: SectorWeights(sector=name, description="Default fallback", weights=dict(weights))
        for name, weights in DEFAULT_SECTOR_WEIGHTS.items()
    }
    return {"sectors": sectors, "default_weight": DEFAULT_OBJECTIVE_WEIGHT}


def _validate_weights(sector_name: str, weights: dict[str, float]) -> None:
    """Validate objective keys and that every weight is positive."""
    known = {o.value for o in SafeguardObjective}
    unknown = set(weights.keys()) - known
    if unknown:
        raise ValueError(f"Sector {sector_name} has unknown safeguard objectives: {unknown}")
    non_positive = {k: v for k, v in weights.items() if v <= 0}
    if non_positive:
        raise ValueError(f"Sector {sector_name} has non-positive weights: {non_positive}")


def get_sector_weights(sector: Sector) -> SectorWeights:
    """Get the weight profile for a sector.

    Sectors without a profile weigh every objective equally.
    """
    registry = _load_registry()
    key = Sector(sector).value
    weights = registry["sectors"].get(key)
    if weights is None:
        logger.warning(f"No safeguard weights for sector '{key}', using uniform weights")
        weights = SectorWeights(sector=key, default_weight=registry["default_weight"])
    return weights


def clear_cache():
    """Clear the registry cache (useful for testing)."""
    global _registry_cache
    _registry_cache = None
