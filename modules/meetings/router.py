from typing import List

from fastapi import APIRouter, Depends

from core.sheets import SheetsClient, get_sheets_client
from .schemas import Meeting, MeetingsSummary
from .service import MeetingsService, get_meetings_service

router = APIRouter(
    prefix="/api/meetings",
    tags=["Meetings"],
)


@router.get("", response_model=List[Meeting])
async def list_meetings(
    service: MeetingsService = Depends(get_meetings_service),
    sheets: SheetsClient = Depends(get_sheets_client),
):
    return await service.list_meetings(sheets)


@router.get("/summary", response_model=MeetingsSummary)
async def get_meetings_summary(
    service: MeetingsService = Depends(get_meetings_service),
    sheets: SheetsClient = Depends(get_sheets_client),
):
    """Dashboard tiles: meetings this week and all time."""
    meetings = await service.list_meetings(sheets)
    return service.summarize(meetings)
