"""Include/exclude filters applied to normalized recommendations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ri_autopilot.shared.models import Recommendation
from ri_autopilot.shared.normalization import normalize_engine_name


logger = logging.getLogger()


@dataclass(frozen=True)
class RecommendationFilter:
    """
    Region, instance type, engine and account filters.

    Empty lists mean "no constraint". Account patterns match the account
    name (or the account id when no name is known) case-insensitively as
    substrings.
    """

    include_regions: list[str] = field(default_factory=list)
    exclude_regions: list[str] = field(default_factory=list)
    include_instance_types: list[str] = field(default_factory=list)
    exclude_instance_types: list[str] = field(default_factory=list)
    include_engines: list[str] = field(default_factory=list)
    exclude_engines: list[str] = field(default_factory=list)
    include_accounts: list[str] = field(default_factory=list)
    exclude_accounts: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> RecommendationFilter:
        return cls(**{name: list(config.get(name) or []) for name in cls.__dataclass_fields__})

    def _region_ok(self, rec: Recommendation) -> bool:
        # Region-flexible recommendations carry no region to filter on
        if not rec.region:
            return True
        if self.include_regions and rec.region not in self.include_regions:
            return False
        return rec.region not in self.exclude_regions

    def _instance_type_ok(self, rec: Recommendation) -> bool:
        if self.include_instance_types and rec.instance_type not in self.include_instance_types:
            return False
        return rec.instance_type not in self.exclude_instance_types

    def _engine_ok(self, rec: Recommendation) -> bool:
        engine = normalize_engine_name(rec.engine_label())
        if not engine:
            return not self.include_engines
        if self.include_engines and engine not in {
            normalize_engine_name(e) for e in self.include_engines
        }:
            return False
        return engine not in {normalize_engine_name(e) for e in self.exclude_engines}

    def _account_ok(self, rec: Recommendation) -> bool:
        account = (rec.account_name or rec.account_id).lower()
        if not account:
            return not self.include_accounts and not self.exclude_accounts
        if self.include_accounts and not any(p.lower() in account for p in self.include_accounts):
            return False
        return not any(p.lower() in account for p in self.exclude_accounts)

    def matches(self, rec: Recommendation) -> bool:
        return (
            self._region_ok(rec)
            and self._instance_type_ok(rec)
            and self._engine_ok(rec)
            and self._account_ok(rec)
        )

    def apply(self, recommendations: list[Recommendation]) -> list[Recommendation]:
        """Return the recommendations that pass every filter, in input order."""
        kept = [rec for rec in recommendations if self.matches(rec)]
        if len(kept) < len(recommendations):
            logger.info(
                f"Filters removed {len(recommendations) - len(kept)} of "
                f"{len(recommendations)} recommendations"
            )
        return kept
