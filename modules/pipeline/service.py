import logging
from typing import List

from .db_service import DealStore
from .schemas import Deal, DealCreate, DealUpdate
from .stages import STAGE_REGISTRY, StageRegistry

logger = logging.getLogger("PipelineModule")


class PipelineService:
    """Encapsula la lógica de negocio del pipeline (deals + tablero)."""

    def __init__(self, registry: StageRegistry = STAGE_REGISTRY):
        self.registry = registry

    def _normalize_stage(self, raw_stage: str) -> str:
        stage = self.registry.canonicalize(raw_stage)
        if not self.registry.is_known(raw_stage):
            logger.warning(f'Stage "{raw_stage}" no reconocido, se usa "{stage}"')
        return stage

    async def list_deals(self, store: DealStore) -> List[Deal]:
        return await store.list_deals()

    async def create_deal(self, store: DealStore, payload: DealCreate) -> Deal:
        fields = payload.model_dump()
        fields["stage"] = self._normalize_stage(payload.stage)
        return await store.create_deal(fields)

    async def update_deal(self, store: DealStore, payload: DealUpdate) -> Deal:
        """
        Full-row replace. When the client sends the version it read, a row
        changed in the meantime is rejected with a conflict instead of being
        overwritten.
        """
        fields = payload.model_dump(exclude={"id", "version"})
        fields["stage"] = self._normalize_stage(payload.stage)
        if not fields.get("created_at"):
            # El cliente puede omitirlo; se conserva el valor de la hoja
            fields.pop("created_at", None)
        return await store.update_deal(payload.id, fields, expected_version=payload.version)

    async def delete_deal(self, store: DealStore, deal_id: str) -> None:
        await store.delete_deal(deal_id)


def get_pipeline_service() -> PipelineService:
    return PipelineService()
