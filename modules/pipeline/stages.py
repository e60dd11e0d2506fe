# modules/pipeline/stages.py

"""
Stage Registry: the single catalog of pipeline stages.

Main stages render left-to-right in catalog order; auxiliary stages render
in their own group. Any raw label (sheet title or canonical id) resolves to
a canonical id; unknown labels fall back to DEFAULT_STAGE_ID.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, TypeVar

MAIN = "main"
AUXILIARY = "auxiliary"

DEFAULT_STAGE_ID = "not-now"

T = TypeVar("T")


@dataclass(frozen=True)
class Stage:
    id: str
    title: str
    category: str
    color: str

    @property
    def is_main(self) -> bool:
        return self.category == MAIN


class StageRegistry:
    """Read-only, ordered catalog of stages plus label -> id mapping."""

    def __init__(self, stages: Tuple[Stage, ...], default_id: str = DEFAULT_STAGE_ID):
        self._stages = tuple(stages)
        self._by_id: Dict[str, Stage] = {s.id: s for s in self._stages}
        if default_id not in self._by_id:
            raise ValueError(f"Default stage '{default_id}' is not in the catalog")
        self.default_id = default_id

        # Titles and ids both resolve, compared case-insensitively
        self._aliases: Dict[str, str] = {}
        for stage in self._stages:
            self._aliases[stage.id.lower()] = stage.id
            self._aliases[stage.title.lower()] = stage.id

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return self._stages

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(s.id for s in self._stages)

    def get(self, stage_id: str) -> Optional[Stage]:
        return self._by_id.get(stage_id)

    def is_known(self, label: Optional[str]) -> bool:
        return bool(label) and label.strip().lower() in self._aliases

    def canonicalize(self, label: Optional[str]) -> str:
        """Total mapping from any raw label to a canonical stage id."""
        if not label:
            return self.default_id
        return self._aliases.get(label.strip().lower(), self.default_id)

    def title_for(self, stage_id: str) -> str:
        stage = self._by_id.get(self.canonicalize(stage_id))
        return stage.title

    def main_stages(self) -> List[Stage]:
        return [s for s in self._stages if s.category == MAIN]

    def auxiliary_stages(self) -> List[Stage]:
        return [s for s in self._stages if s.category == AUXILIARY]

    def to_dict(self) -> dict:
        def _serialize(stage: Stage) -> dict:
            return {"id": stage.id, "title": stage.title, "category": stage.category, "color": stage.color}

        return {
            "main": [_serialize(s) for s in self.main_stages()],
            "auxiliary": [_serialize(s) for s in self.auxiliary_stages()],
            "default": self.default_id,
        }


STAGE_REGISTRY = StageRegistry((
    # Main pipeline (left to right)
    Stage("meeting-booked", "Meeting Booked", MAIN, "#3b82f6"),
    Stage("active-conversation", "Active Conversation", MAIN, "#22c55e"),
    Stage("nda-considering", "NDA (Considering)", MAIN, "#f97316"),
    Stage("nda-signed", "NDA (Signed)", MAIN, "#14b8a6"),
    Stage("documents-uploaded", "Documents Uploaded", MAIN, "#06b6d4"),
    Stage("contract-negotiations", "Contract Negotiations", MAIN, "#ec4899"),
    Stage("won", "Won", MAIN, "#a855f7"),
    # Auxiliary
    Stage("not-now", "Not Now", AUXILIARY, "#6b7280"),
    Stage("exploring-other-options", "Exploring Other Options", AUXILIARY, "#eab308"),
    Stage("not-interested", "Not Interested", AUXILIARY, "#ef4444"),
))


def get_stage_registry() -> StageRegistry:
    """Dependencia de FastAPI: siempre la misma instancia."""
    return STAGE_REGISTRY


def group_by_stage(deals: Iterable[T], registry: StageRegistry = STAGE_REGISTRY) -> Dict[str, List[T]]:
    """
    Partitions deals by stage id, in catalog order.

    Every stage gets a (possibly empty) list and every deal lands in exactly
    one list; a stage outside the catalog goes to the default stage.
    """
    groups: Dict[str, List[T]] = {stage_id: [] for stage_id in registry.ids}
    for deal in deals:
        groups[registry.canonicalize(deal.stage)].append(deal)
    return groups
