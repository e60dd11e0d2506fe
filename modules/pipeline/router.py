import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.templating import Jinja2Templates

from core.errors import StoreError
from core.jinja_filters import register_board_filters
from core.config import settings
from core.schemas import AckResponse, ErrorResponse
from core.sheets import SheetsClient, current_sheets_client, require_sheets_client
from .board import build_columns
from .db_service import DealStore, get_deal_store
from .schemas import Deal, DealCreate, DealUpdate, DealsResponse
from .service import PipelineService, get_pipeline_service
from .stages import StageRegistry, get_stage_registry

logger = logging.getLogger("PipelineModule")

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[2] / "templates"))
register_board_filters(templates.env)

ERROR_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Permission denied"},
    404: {"model": ErrorResponse, "description": "Deal or sheet not found"},
    409: {"model": ErrorResponse, "description": "Deal changed since it was read"},
    503: {"model": ErrorResponse, "description": "Spreadsheet store unreachable"},
}

router = APIRouter(tags=["Pipeline"])


# ----------------------------------------
# UI
# ----------------------------------------

@router.get("/pipeline/ui", include_in_schema=False)
async def get_pipeline_ui(
    request: Request,
    registry: StageRegistry = Depends(get_stage_registry),
    service: PipelineService = Depends(get_pipeline_service),
    sheets: Optional[SheetsClient] = Depends(current_sheets_client),
):
    """Main Entry: Kanban board grouped by stage."""
    deals, error = [], None
    try:
        # Sin configuración también se muestra la página de error, no JSON
        store = DealStore(require_sheets_client(sheets), registry)
        deals = await service.list_deals(store)
    except StoreError as e:
        # La página muestra el error con botón de reintento
        logger.error(f"No se pudo cargar el tablero: {e.message}")
        error = e.message

    return templates.TemplateResponse(request, "pipeline/board.html", {
        "columns": build_columns(deals, registry),
        "total": len(deals),
        "error": error,
        "refresh_ms": int(settings.BOARD_REFRESH_SECONDS * 1000),
    })


# ----------------------------------------
# API JSON
# ----------------------------------------

@router.get("/api/pipeline", response_model=DealsResponse, responses=ERROR_RESPONSES)
async def list_deals(
    service: PipelineService = Depends(get_pipeline_service),
    store: DealStore = Depends(get_deal_store),
):
    deals = await service.list_deals(store)
    return {"deals": deals}


@router.get("/api/pipeline/stages")
async def list_stages(registry: StageRegistry = Depends(get_stage_registry)):
    """Stage catalog for clients that render their own columns."""
    return registry.to_dict()


@router.post(
    "/api/pipeline",
    response_model=Deal,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_deal(
    payload: DealCreate,
    service: PipelineService = Depends(get_pipeline_service),
    store: DealStore = Depends(get_deal_store),
):
    """Creates a deal and echoes it with its assigned id."""
    return await service.create_deal(store, payload)


@router.put("/api/pipeline", response_model=AckResponse, responses=ERROR_RESPONSES)
async def update_deal(
    payload: DealUpdate,
    service: PipelineService = Depends(get_pipeline_service),
    store: DealStore = Depends(get_deal_store),
):
    """Full-record update (drag-and-drop moves and the edit form both land here)."""
    await service.update_deal(store, payload)
    return AckResponse()


@router.delete("/api/pipeline", response_model=AckResponse, responses=ERROR_RESPONSES)
async def delete_deal(
    id: str = Query(..., min_length=1, description="Deal id"),
    service: PipelineService = Depends(get_pipeline_service),
    store: DealStore = Depends(get_deal_store),
):
    await service.delete_deal(store, id)
    return AckResponse()
