"""
Prepares the Pipeline sheet: writes the header row and gives every legacy
row (typed in by hand, no Deal ID) a UUID and version 1.
"""
import asyncio
from uuid import uuid4

from core.config import settings
from core.sheets import connect_to_sheets, close_sheets_connection, current_sheets_client, require_sheets_client
from modules.pipeline.constants import (
    COL_DEAL_ID, COL_FIRM_NAME, COL_VERSION, COLUMN_COUNT, FIRST_DATA_ROW,
    PIPELINE_HEADERS, sheet_range,
)


async def init_pipeline_sheet():
    await connect_to_sheets()
    sheets = require_sheets_client(current_sheets_client())
    sheet = settings.PIPELINE_SHEET
    try:
        await sheets.update_values(sheet_range(sheet, 1, 1), [PIPELINE_HEADERS])
        print(f"Header written to '{sheet}'.")

        rows = (await sheets.get_values(sheet_range(sheet)))[1:]
        migrated = 0
        for offset, row in enumerate(rows):
            row = list(row) + [""] * (COLUMN_COUNT - len(row))
            if not str(row[COL_FIRM_NAME]).strip() or str(row[COL_DEAL_ID]).strip():
                continue
            row[COL_DEAL_ID] = str(uuid4())
            row[COL_VERSION] = row[COL_VERSION] or 1
            row_number = offset + FIRST_DATA_ROW
            await sheets.update_values(sheet_range(sheet, row_number, row_number), [row])
            migrated += 1
        print(f"{migrated} legacy rows got a Deal ID.")
    except Exception as e:
        print(f"Error: {e}")
    finally:
        await close_sheets_connection()

if __name__ == "__main__":
    asyncio.run(init_pipeline_sheet())
