"""
Kanban board view contract.

Columns are derived from Board State on every call; the board itself only
keeps the card being dragged and forwards drops to the controller.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .controller import BoardStateController, PendingMutation
from .schemas import Deal
from .stages import STAGE_REGISTRY, Stage, StageRegistry, group_by_stage

logger = logging.getLogger("KanbanBoard")


@dataclass
class StageColumn:
    stage: Stage
    deals: List[Deal]

    @property
    def count(self) -> int:
        return len(self.deals)


def build_columns(deals: Iterable[Deal], registry: StageRegistry = STAGE_REGISTRY) -> Dict[str, List[StageColumn]]:
    """Main columns left to right, auxiliary columns as a separate group."""
    groups = group_by_stage(deals, registry)
    return {
        "main": [StageColumn(s, groups[s.id]) for s in registry.main_stages()],
        "auxiliary": [StageColumn(s, groups[s.id]) for s in registry.auxiliary_stages()],
    }


class KanbanBoard:
    """Drag lifecycle: drag_start -> drop (optional) -> drag_end."""

    def __init__(self, controller: BoardStateController, registry: Optional[StageRegistry] = None):
        self.controller = controller
        self.registry = registry or controller.registry
        self.dragged_deal: Optional[Deal] = None

    def columns(self) -> Dict[str, List[StageColumn]]:
        return build_columns(self.controller.deals, self.registry)

    def status(self) -> dict:
        return {
            "total": len(self.controller.deals),
            "last_updated": self.controller.last_updated,
            "loading": self.controller.loading,
            "error": self.controller.error,
        }

    def drag_start(self, deal_id: str) -> Optional[Deal]:
        self.dragged_deal = self.controller.get_deal(deal_id)
        return self.dragged_deal

    async def drop(self, stage_id: str) -> Optional[PendingMutation]:
        """Drop on a column. Anything that is not a column id is a no-op."""
        deal = self.dragged_deal
        if deal is None:
            return None
        stage = self.registry.get(stage_id)
        if stage is None:
            logger.debug(f"Drop fuera de columna ({stage_id!r}), se ignora")
            return None
        return await self.controller.move_deal(deal.id, stage.id)

    def drag_end(self) -> None:
        self.dragged_deal = None
