# Archivo: modules/meetings/schemas.py

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class Meeting(BaseModel):
    """One row of the Meetings sheet: [date, title, stage, owner]."""
    date: str = ""
    title: str = ""
    stage: str = ""
    owner: str = ""


class MeetingsSummary(BaseModel):
    """Tiles of the dashboard: this week (since Monday) and all time."""
    this_week: int = Field(0, alias="thisWeek")
    all_time: int = Field(0, alias="allTime")
    week_start: date = Field(..., alias="weekStart")
    today: date
    earliest: Optional[date] = None

    model_config = ConfigDict(populate_by_name=True)
