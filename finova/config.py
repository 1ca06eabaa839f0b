"""
Facility Configuration

Environment-specific settings for a borrowing facility. Pool destinations are
injected here rather than compiled in, so the same processor can run against
test wallets, a staging host or the production reserve accounts.

Usage:
    from finova import FacilityConfig

    # Default config (production reserve account ids)
    config = FacilityConfig()

    # Explicit pools
    config = FacilityConfig(ordenante_pool="pool_a", receptor_pool="pool_b")

    # Load from file
    config = FacilityConfig.from_yaml("facility.yaml")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import yaml

from .core import (
    ARITHMETIC_PRECISION,
    DEFAULT_DECIMAL_PLACES,
    DEFAULT_MAX_VALUE,
    DEFAULT_ORDENANTE_POOL,
    DEFAULT_RECEPTOR_POOL,
    Pool,
)


@dataclass(frozen=True)
class FacilityConfig:
    """
    Settings for one facility instance.

    Attributes:
        ordenante_pool: Destination id for order-side deposits
        receptor_pool: Destination id for receiver-side deposits
        unit_symbol: Symbol of the single unit of account (display only)
        decimal_places: Fractional digits allowed in amounts
        max_value: Largest representable balance; sums above it overflow
    """

    ordenante_pool: str = DEFAULT_ORDENANTE_POOL
    receptor_pool: str = DEFAULT_RECEPTOR_POOL
    unit_symbol: str = "UNIT"
    decimal_places: int = DEFAULT_DECIMAL_PLACES
    max_value: Decimal = DEFAULT_MAX_VALUE

    def __post_init__(self):
        if not self.ordenante_pool or not self.ordenante_pool.strip():
            raise ValueError("ordenante_pool cannot be empty")
        if not self.receptor_pool or not self.receptor_pool.strip():
            raise ValueError("receptor_pool cannot be empty")
        if self.ordenante_pool == self.receptor_pool:
            raise ValueError("ordenante_pool and receptor_pool must be different")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("unit_symbol cannot be empty")
        if isinstance(self.decimal_places, bool) or not isinstance(self.decimal_places, int):
            raise ValueError(f"decimal_places must be int, got {type(self.decimal_places)}")
        if self.decimal_places < 0:
            raise ValueError(f"decimal_places cannot be negative, got {self.decimal_places}")
        # YAML and JSON hand back ints/strings; store a Decimal
        if not isinstance(self.max_value, Decimal):
            object.__setattr__(self, "max_value", Decimal(str(self.max_value)))
        if not self.max_value.is_finite() or self.max_value <= 0:
            raise ValueError(f"max_value must be positive and finite, got {self.max_value}")
        # Every value up to max_value must fit the checked-arithmetic context exactly
        digits = max(self.max_value.adjusted() + 1, 1) + self.decimal_places
        if digits > ARITHMETIC_PRECISION:
            raise ValueError(
                f"max_value {self.max_value} with {self.decimal_places} decimal places needs "
                f"{digits} digits, more than the {ARITHMETIC_PRECISION} supported"
            )

    def destination(self, pool: Pool) -> str:
        """Resolve a pool to its configured destination id."""
        if pool is Pool.ORDENANTE:
            return self.ordenante_pool
        if pool is Pool.RECEPTOR:
            return self.receptor_pool
        raise ValueError(f"Unknown pool: {pool!r}")

    def to_dict(self) -> dict:
        """Convert config to dictionary for serialization."""
        return {
            "pools": {
                "ordenante": self.ordenante_pool,
                "receptor": self.receptor_pool,
            },
            "unit": {
                "symbol": self.unit_symbol,
                "decimal_places": self.decimal_places,
                "max_value": str(self.max_value),
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> FacilityConfig:
        """Create config from dictionary. Missing keys fall back to defaults."""
        pools_cfg = data.get("pools", {}) or {}
        unit_cfg = data.get("unit", {}) or {}
        return cls(
            ordenante_pool=pools_cfg.get("ordenante", DEFAULT_ORDENANTE_POOL),
            receptor_pool=pools_cfg.get("receptor", DEFAULT_RECEPTOR_POOL),
            unit_symbol=unit_cfg.get("symbol", "UNIT"),
            decimal_places=unit_cfg.get("decimal_places", DEFAULT_DECIMAL_PLACES),
            max_value=Decimal(str(unit_cfg.get("max_value", DEFAULT_MAX_VALUE))),
        )

    def to_yaml(self, path: str | Path) -> None:
        """Save config to YAML file."""
        path = Path(path)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, path: str | Path) -> FacilityConfig:
        """Load config from YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})
