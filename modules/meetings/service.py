import logging
from datetime import date, timedelta
from typing import List, Optional

import pandas as pd

from core.config import settings
from core.sheets import SheetsClient
from .schemas import Meeting, MeetingsSummary

logger = logging.getLogger("MeetingsModule")

MEETING_COLUMNS = ["date", "title", "stage", "owner"]


class MeetingsService:
    """Lectura de la hoja Meetings y métricas del dashboard."""

    def __init__(self, sheet_name: Optional[str] = None):
        self.sheet_name = sheet_name or settings.MEETINGS_SHEET

    async def list_meetings(self, sheets: SheetsClient) -> List[Meeting]:
        rows = await sheets.get_values(f"{self.sheet_name}!A2:D")
        meetings = []
        for row in rows:
            cells = [str(c).strip() for c in row] + [""] * len(MEETING_COLUMNS)
            if not any(cells):
                continue
            meetings.append(Meeting(**dict(zip(MEETING_COLUMNS, cells))))
        logger.info(f"Fetched {len(meetings)} meetings")
        return meetings

    @staticmethod
    def summarize(meetings: List[Meeting], today: Optional[date] = None) -> MeetingsSummary:
        """
        Cuenta reuniones desde el lunes de la semana actual y de todo el histórico.

        Fechas que no se pueden interpretar cuentan en all_time pero no en
        this_week ni en earliest.
        """
        today = today or date.today()
        monday = today - timedelta(days=today.weekday())

        dates = pd.to_datetime(
            pd.Series([m.date for m in meetings], dtype="object"),
            errors="coerce",
            format="mixed",
        ).dropna()

        this_week = int((dates.dt.normalize() >= pd.Timestamp(monday)).sum()) if not dates.empty else 0
        earliest = dates.min().date() if not dates.empty else None

        return MeetingsSummary(
            this_week=this_week,
            all_time=len(meetings),
            week_start=monday,
            today=today,
            earliest=earliest,
        )


def get_meetings_service() -> MeetingsService:
    return MeetingsService()
