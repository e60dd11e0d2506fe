import csv
import logging
from datetime import date
from typing import List, Optional

import pandas as pd

from core.config import settings
from core.sheets import SheetsClient
from .schemas import FirmBooking, FirmKpis, FirmRow

logger = logging.getLogger("FirmsModule")

SORT_NAME = "name"
SORT_DATE = "dateBooked"
SORT_AUM = "aumMillions"


def _to_float(raw) -> float:
    try:
        return float(str(raw).replace(",", "").strip() or 0)
    except ValueError:
        return 0.0


class FirmsService:
    """
    Tabla de firmas: agrupación de reservas, KPIs de AUM, filtros y export CSV.
    """

    def __init__(self, sheet_name: Optional[str] = None):
        self.sheet_name = sheet_name or settings.FIRMS_SHEET

    async def list_bookings(self, sheets: SheetsClient) -> List[FirmBooking]:
        rows = await sheets.get_values(f"{self.sheet_name}!A2:C")
        bookings = []
        for row in rows:
            name = str(row[0]).strip() if row else ""
            if not name:
                continue
            bookings.append(FirmBooking(
                name=name,
                date_booked=str(row[1]).strip() if len(row) > 1 else "",
                aum_millions=_to_float(row[2]) if len(row) > 2 else 0.0,
            ))
        return bookings

    @staticmethod
    def _frame(bookings: List[FirmBooking]) -> pd.DataFrame:
        df = pd.DataFrame(
            [b.model_dump() for b in bookings],
            columns=["name", "date_booked", "aum_millions"],
        )
        df["booked"] = pd.to_datetime(df["date_booked"], errors="coerce", format="mixed")
        return df

    def group_firms(self, bookings: List[FirmBooking]) -> List[FirmRow]:
        """One row per firm name: booking dates ascending as M/D/YYYY, max AUM."""
        if not bookings:
            return []
        df = self._frame(bookings)

        firms = []
        for name, group in df.groupby("name", sort=False):
            dates = group["booked"].dropna().sort_values()
            firms.append(FirmRow(
                name=name,
                date_booked=", ".join(f"{d.month}/{d.day}/{d.year}" for d in dates),
                first_booked=dates.iloc[0].date() if not dates.empty else None,
                aum_millions=float(group["aum_millions"].max()),
            ))
        return firms

    def compute_kpis(self, firms: List[FirmRow], bookings: List[FirmBooking]) -> FirmKpis:
        """Median and average only consider firms with a positive AUM."""
        aums = pd.Series([f.aum_millions for f in firms], dtype="float64")
        positive = aums[aums > 0]

        date_span = ""
        if bookings:
            booked = self._frame(bookings)["booked"].dropna()
            if not booked.empty:
                first, last = booked.min(), booked.max()
                date_span = f"{first:%b} - {last:%b} {last.year}"

        return FirmKpis(
            count=len(firms),
            total_aum=float(aums.sum()),
            median_aum=float(positive.median()) if not positive.empty else 0.0,
            avg_aum=float(positive.mean()) if not positive.empty else 0.0,
            date_span=date_span,
        )

    @staticmethod
    def filter_and_sort(
        firms: List[FirmRow],
        search: str = "",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sort_key: str = SORT_AUM,
        direction: str = "desc",
    ) -> List[FirmRow]:
        """
        `search` admite varios términos separados por coma (basta con que uno
        coincida). Las fechas se comparan contra la primera reserva; firmas sin
        fecha válida no se descartan por rango.
        """
        terms = [t.strip().lower() for t in (search or "").split(",") if t.strip()]

        def _keep(firm: FirmRow) -> bool:
            if terms and not any(t in firm.name.lower() for t in terms):
                return False
            if firm.first_booked is not None:
                if start_date and firm.first_booked < start_date:
                    return False
                if end_date and firm.first_booked > end_date:
                    return False
            return True

        sort_keys = {
            SORT_NAME: lambda f: f.name.lower(),
            SORT_DATE: lambda f: f.first_booked or date.min,
            SORT_AUM: lambda f: f.aum_millions,
        }
        return sorted(
            (f for f in firms if _keep(f)),
            key=sort_keys.get(sort_key, sort_keys[SORT_AUM]),
            reverse=direction == "desc",
        )

    @staticmethod
    def export_csv(firms: List[FirmRow], show_date: bool = True, show_aum: bool = True) -> str:
        data = {"Firm Name": [f.name for f in firms]}
        if show_date:
            data["Date Booked"] = [f.date_booked for f in firms]
        if show_aum:
            data["AUM (M)"] = [f.aum_millions for f in firms]
        return pd.DataFrame(data).to_csv(index=False, quoting=csv.QUOTE_ALL)


def get_firms_service() -> FirmsService:
    return FirmsService()
