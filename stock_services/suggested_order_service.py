"""
SuggestedOrderService -- Service wrapper for replenishment suggestions.

Composes ReplenishmentSuggester (pure engine) with repository access and
the active engine configuration, and derives the venue-wide roll-up and
the draft-order plan from the same result.

Architecture: stock_services -- imperative shell.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from stock_config import get_active_config
from stock_config.bridges import suggest_options
from stock_config.schema import EngineConfig
from stock_engines.replenishment import (
    DraftPlan,
    ReplenishmentSuggester,
    SuggestionResult,
    plan_drafts,
    roll_up_departments,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_services.repository import SnapshotRepository

logger = get_logger("services.suggested_orders")


@dataclass(frozen=True)
class SuggestedOrders:
    venue_id: str
    by_department: SuggestionResult
    all_departments: SuggestionResult
    drafts: DraftPlan
    config_checksum: str


class SuggestedOrderService:
    """Service that computes suggested orders for a venue.

    Contract:
        - ``suggest()`` runs the suggester over the venue's on-hand
          snapshot and returns the per-department result, the "ALL"
          roll-up and the draft plan.

    Non-goals:
        - Does NOT create or merge draft orders (caller decides).
        - Does NOT schedule recomputation.
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        config: EngineConfig | None = None,
        suggester: ReplenishmentSuggester | None = None,
    ) -> None:
        self._repository = repository
        self._config = config or get_active_config()
        self._suggester = suggester or ReplenishmentSuggester()

    def suggest(self, venue_id: str) -> SuggestedOrders:
        with LogContext.bind(venue_id=venue_id, run_id=str(uuid.uuid4())):
            result = self._suggester.build_suggested_orders(
                products=self._repository.products(venue_id),
                on_hand=self._repository.on_hand(venue_id),
                suppliers=self._repository.suppliers(venue_id),
                options=suggest_options(self._config),
            )
            rolled_up = roll_up_departments(result)
            drafts = plan_drafts(rolled_up, self._repository.draft_supplier_ids(venue_id))

            logger.info("suggested_orders_planned", extra={
                "will_create": len(drafts.will_create),
                "will_merge": len(drafts.will_merge),
                "unassigned_lines": len(result.unassigned.lines),
            })

        return SuggestedOrders(
            venue_id=venue_id,
            by_department=result,
            all_departments=rolled_up,
            drafts=drafts,
            config_checksum=self._config.checksum,
        )
