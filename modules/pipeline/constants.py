# modules/pipeline/constants.py

"""
Pipeline sheet layout. Columns are fixed by position; row 1 is the header.
A-E are the columns every pipeline sheet must have, F-L are managed by the app.
"""

COL_FIRM_NAME = 0      # A
COL_STAGE = 1          # B
COL_VALUE = 2          # C
COL_LAST_ACTIVITY = 3  # D
COL_NOTE = 4           # E
COL_CREATED_AT = 5     # F
COL_CONTACT_COUNT = 6  # G
COL_EMAIL_COUNT = 7    # H
COL_MEETING_COUNT = 8  # I
COL_NOTE_COUNT = 9     # J
COL_DEAL_ID = 10       # K
COL_VERSION = 11       # L

COLUMN_COUNT = 12
LAST_COLUMN = "L"
REQUIRED_COLUMNS = 5

HEADER_ROW = 1
FIRST_DATA_ROW = 2

PIPELINE_HEADERS = [
    "Firm Name", "Stage", "Value", "Last Activity", "Note",
    "Created At", "Contacts", "Emails", "Meetings", "Notes", "Deal ID", "Version",
]

DISPLAY_DATETIME_FORMAT = "%Y-%m-%d %H:%M"


def sheet_range(sheet: str, start_row: int = HEADER_ROW, end_row: int = None) -> str:
    """A1 range covering all managed columns, e.g. Pipeline!A7:L7."""
    end = f"{LAST_COLUMN}{end_row}" if end_row else LAST_COLUMN
    return f"{sheet}!A{start_row}:{end}"
