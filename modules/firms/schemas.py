# Archivo: modules/firms/schemas.py

from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


class FirmBooking(BaseModel):
    """One row of the Firms sheet: [name, dateBooked, aumMillions]."""
    name: str
    date_booked: str = Field("", alias="dateBooked")
    aum_millions: float = Field(0.0, alias="aumMillions")

    model_config = ConfigDict(populate_by_name=True)


class FirmRow(BaseModel):
    """A firm with all its bookings merged (dates joined, max AUM)."""
    name: str
    date_booked: str = Field("", alias="dateBooked")
    first_booked: Optional[date] = Field(None, alias="firstBooked")
    aum_millions: float = Field(0.0, alias="aumMillions")

    model_config = ConfigDict(populate_by_name=True)


class FirmKpis(BaseModel):
    count: int = 0
    total_aum: float = Field(0.0, alias="totalAum")
    median_aum: float = Field(0.0, alias="medianAum")
    avg_aum: float = Field(0.0, alias="avgAum")
    date_span: str = Field("", alias="dateSpan")

    model_config = ConfigDict(populate_by_name=True)


class FirmsResponse(BaseModel):
    firms: List[FirmRow]
    kpis: FirmKpis
    filtered_aum: float = Field(0.0, alias="filteredAum")

    model_config = ConfigDict(populate_by_name=True)


class FirmSummary(BaseModel):
    name: str
    summary: str
