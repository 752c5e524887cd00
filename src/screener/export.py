"""CSV export of a filtered instrument set."""

import csv
import io
from datetime import date
from typing import Iterable, Optional

from src.screener.config import EXPORT_COLUMNS
from src.screener.models import Instrument


def export_csv(instruments: Iterable[Instrument]) -> str:
    """Render instruments as CSV with a header row.

    Names containing commas or quotes are quoted by the csv writer.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for i in instruments:
        writer.writerow([
            i.symbol,
            i.name,
            f"{i.price:.2f}",
            f"{i.change_percent:.2f}",
            f"{i.rsi:.1f}",
            i.trend.value,
            i.signal.value,
            f"{i.price_to_equilibrium:.1f}%",
            i.sector,
        ])
    return output.getvalue()


def export_bytes(instruments: Iterable[Instrument]) -> bytes:
    return export_csv(instruments).encode("utf-8")


def export_filename(on: Optional[date] = None) -> str:
    on = on or date.today()
    return f"stock_scan_{on.isoformat()}.csv"
