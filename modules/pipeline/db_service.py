# Archivo: modules/pipeline/db_service.py
"""
Deal Store Client: CRUD over the Pipeline sheet.

Identity: deals created here get a UUID in the Deal ID column. Rows typed in
by hand (Deal ID empty) use their sheet row number as id until their first
write, which persists that id into the column.

Versioning: the Version column is bumped on every write; updates may pass
`expected_version` to refuse overwriting a row someone else changed.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from fastapi import Depends
from pydantic import ValidationError

from core.config import settings
from core.errors import (
    DealNotFound, StoreConflictError, StoreSchemaError, StoreWriteError, write_error_from_validation,
)
from core.sheets import SheetsClient, get_sheets_client
from .constants import (
    COL_CONTACT_COUNT, COL_CREATED_AT, COL_DEAL_ID, COL_EMAIL_COUNT, COL_FIRM_NAME,
    COL_LAST_ACTIVITY, COL_MEETING_COUNT, COL_NOTE, COL_NOTE_COUNT, COL_STAGE,
    COL_VALUE, COL_VERSION, COLUMN_COUNT, DISPLAY_DATETIME_FORMAT, FIRST_DATA_ROW,
    REQUIRED_COLUMNS, sheet_range,
)
from .schemas import Deal
from .stages import STAGE_REGISTRY, StageRegistry

logger = logging.getLogger("PipelineModule")


def _cell(row: List[Any], index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def _to_count(raw: str) -> int:
    """Non-negative int; blanks and garbage count as 0."""
    try:
        return max(0, int(float(raw)))
    except (TypeError, ValueError):
        return 0


class DealStore:
    """Encapsula lectura/escritura de deals en la hoja Pipeline."""

    def __init__(
        self,
        sheets: SheetsClient,
        registry: StageRegistry = STAGE_REGISTRY,
        sheet_name: Optional[str] = None,
    ):
        self.sheets = sheets
        self.registry = registry
        self.sheet_name = sheet_name or settings.PIPELINE_SHEET

    # --- Mapeo fila <-> Deal ---

    def _parse_row(self, row: List[Any], row_number: int) -> Optional[Deal]:
        if not any(_cell(row, i) for i in range(COLUMN_COUNT)):
            return None  # fila vacía o borrada

        firm_name = _cell(row, COL_FIRM_NAME)
        if not firm_name:
            logger.warning(f"Fila {row_number} sin nombre de firma, se omite")
            return None

        raw_stage = _cell(row, COL_STAGE)
        stage = self.registry.canonicalize(raw_stage)
        if raw_stage and not self.registry.is_known(raw_stage):
            logger.warning(
                f'Unknown stage "{raw_stage}" for {firm_name}, defaulting to "{stage}"'
            )

        return Deal(
            id=_cell(row, COL_DEAL_ID) or str(row_number),
            firm_name=firm_name,
            stage=stage,
            value=_cell(row, COL_VALUE),
            last_activity=_cell(row, COL_LAST_ACTIVITY),
            note=_cell(row, COL_NOTE),
            created_at=_cell(row, COL_CREATED_AT),
            contact_count=_to_count(_cell(row, COL_CONTACT_COUNT)),
            email_count=_to_count(_cell(row, COL_EMAIL_COUNT)),
            meeting_count=_to_count(_cell(row, COL_MEETING_COUNT)),
            note_count=_to_count(_cell(row, COL_NOTE_COUNT)),
            version=_to_count(_cell(row, COL_VERSION)),
        )

    def _serialize(self, deal: Deal) -> List[Any]:
        row: List[Any] = [""] * COLUMN_COUNT
        row[COL_FIRM_NAME] = deal.firm_name
        # La hoja la editan personas: se guarda el título legible
        row[COL_STAGE] = self.registry.title_for(deal.stage)
        row[COL_VALUE] = deal.value
        row[COL_LAST_ACTIVITY] = deal.last_activity
        row[COL_NOTE] = deal.note
        row[COL_CREATED_AT] = deal.created_at
        row[COL_CONTACT_COUNT] = deal.contact_count
        row[COL_EMAIL_COUNT] = deal.email_count
        row[COL_MEETING_COUNT] = deal.meeting_count
        row[COL_NOTE_COUNT] = deal.note_count
        row[COL_DEAL_ID] = deal.id
        row[COL_VERSION] = deal.version
        return row

    # --- Lecturas ---

    async def _read_rows(self) -> List[List[Any]]:
        """Data rows (header stripped); index i is sheet row i + FIRST_DATA_ROW."""
        rows = await self.sheets.get_values(sheet_range(self.sheet_name))
        header = rows[0] if rows else []
        if sum(1 for i in range(REQUIRED_COLUMNS) if _cell(header, i)) < REQUIRED_COLUMNS:
            raise StoreSchemaError(
                f'Sheet "{self.sheet_name}" is missing its header row or one of its '
                f"first {REQUIRED_COLUMNS} columns (firm, stage, value, last activity, note)."
            )
        return rows[1:]

    async def _find_row(self, deal_id: str) -> Tuple[int, Deal]:
        for offset, row in enumerate(await self._read_rows()):
            row_number = offset + FIRST_DATA_ROW
            deal = self._parse_row(row, row_number)
            if deal and deal.id == deal_id:
                return row_number, deal
        raise DealNotFound(f"Deal {deal_id} not found")

    async def list_deals(self) -> List[Deal]:
        rows = await self._read_rows()
        deals = []
        for offset, row in enumerate(rows):
            deal = self._parse_row(row, offset + FIRST_DATA_ROW)
            if deal:
                deals.append(deal)
        logger.info(f"Successfully fetched {len(rows)} rows ({len(deals)} deals)")
        return deals

    async def get_deal(self, deal_id: str) -> Deal:
        _, deal = await self._find_row(deal_id)
        return deal

    # --- Escrituras ---

    async def create_deal(self, fields: Dict[str, Any]) -> Deal:
        """Appends one row. No retry: a failed append leaves nothing behind."""
        firm_name = str(fields.get("firm_name") or "").strip()
        if not firm_name:
            raise StoreWriteError("firmName is required")
        if not fields.get("stage"):
            raise StoreWriteError("stage is required")

        now = datetime.now().strftime(DISPLAY_DATETIME_FORMAT)
        data = {**fields}
        data.update(
            id=str(uuid4()),
            firm_name=firm_name,
            stage=self.registry.canonicalize(fields.get("stage")),
            created_at=fields.get("created_at") or now,
            last_activity=fields.get("last_activity") or now,
            version=1,
        )
        try:
            deal = Deal.model_validate(data)
        except ValidationError as e:
            raise write_error_from_validation(e) from e

        await self.sheets.append_values(sheet_range(self.sheet_name, 1), [self._serialize(deal)])
        logger.info(f"Deal creado {deal.id} ({deal.firm_name}) en {deal.stage}")
        return deal

    async def update_deal(
        self,
        deal_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Deal:
        """Rewrites the whole row of `deal_id`."""
        row_number, current = await self._find_row(deal_id)

        if expected_version is not None and expected_version != current.version:
            raise StoreConflictError(
                f"Deal {deal_id} was changed by someone else "
                f"(expected version {expected_version}, found {current.version}). Refresh and retry."
            )

        data = current.model_dump()
        data.update({k: v for k, v in fields.items() if k not in ("id", "version")})
        data["stage"] = self.registry.canonicalize(data.get("stage"))
        data["version"] = current.version + 1
        try:
            updated = Deal.model_validate(data)
        except ValidationError as e:
            raise write_error_from_validation(e) from e

        range_a1 = sheet_range(self.sheet_name, row_number, row_number)
        await self.sheets.update_values(range_a1, [self._serialize(updated)])
        logger.info(f"Deal {deal_id} actualizado (v{updated.version}, stage={updated.stage})")
        return updated

    async def delete_deal(self, deal_id: str) -> None:
        """Clears the row cells. The row is not removed, so positions never shift."""
        row_number, _ = await self._find_row(deal_id)
        await self.sheets.clear_values(sheet_range(self.sheet_name, row_number, row_number))
        logger.info(f"Deal {deal_id} borrado (fila {row_number} vaciada)")


def get_deal_store(sheets: SheetsClient = Depends(get_sheets_client)) -> DealStore:
    """Dependencia de FastAPI."""
    return DealStore(sheets)
