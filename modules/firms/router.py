import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from core.sheets import SheetsClient, get_sheets_client
from .schemas import FirmsResponse, FirmSummary
from .service import FirmsService, get_firms_service
from .summary_service import FirmSummaryService, SummaryFailed, SummaryUnavailable, get_firm_summary_service

logger = logging.getLogger("FirmsModule")

router = APIRouter(
    prefix="/api/firms",
    tags=["Firms"],
)

SortKey = Literal["name", "dateBooked", "aumMillions"]
Direction = Literal["asc", "desc"]


@router.get("", response_model=FirmsResponse)
async def list_firms(
    q: str = Query("", description="Comma-separated search terms"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sort: SortKey = "aumMillions",
    direction: Direction = "desc",
    service: FirmsService = Depends(get_firms_service),
    sheets: SheetsClient = Depends(get_sheets_client),
):
    """Firms grouped by name with AUM KPIs (KPIs ignore the filters)."""
    bookings = await service.list_bookings(sheets)
    firms = service.group_firms(bookings)
    rows = service.filter_and_sort(firms, q, start_date, end_date, sort, direction)
    return FirmsResponse(
        firms=rows,
        kpis=service.compute_kpis(firms, bookings),
        filtered_aum=sum(f.aum_millions for f in rows),
    )


@router.get("/export.csv")
async def export_firms_csv(
    q: str = Query(""),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sort: SortKey = "aumMillions",
    direction: Direction = "desc",
    show_date: bool = Query(True, alias="showDate"),
    show_aum: bool = Query(True, alias="showAum"),
    service: FirmsService = Depends(get_firms_service),
    sheets: SheetsClient = Depends(get_sheets_client),
):
    bookings = await service.list_bookings(sheets)
    rows = service.filter_and_sort(service.group_firms(bookings), q, start_date, end_date, sort, direction)
    return Response(
        content=service.export_csv(rows, show_date=show_date, show_aum=show_aum),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="firms.csv"'},
    )


@router.get("/summary", response_model=FirmSummary)
async def get_firm_summary(
    name: str = Query(..., min_length=1),
    service: FirmSummaryService = Depends(get_firm_summary_service),
):
    """One-line description of a firm, generated on demand."""
    try:
        summary = await service.summarize_firm(name)
    except SummaryUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except SummaryFailed as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return FirmSummary(name=name, summary=summary)
