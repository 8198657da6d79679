"""CSV export of the arrivals table."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from customsops.reconciliation.arrivals import days_since_release, latest_check
from customsops.reconciliation.email_draft import short_date
from customsops.reconciliation.status import ShipmentStatus, classify_arrival
from customsops.utils.dates import utc_now

EXPORT_HEADERS = [
    "MRN",
    "Declaration ID",
    "Commercial Ref",
    "Status",
    "Days Waiting",
    "Packages",
    "Gross Mass",
    "Saldo",
    "Checked By",
    "Check Date",
    "Last Note",
]


def _cell(value: Any) -> Any:
    return "" if value is None else value


def export_rows(
    arrivals: Iterable[dict[str, Any]],
    tracking_records: list[dict[str, Any]],
    now: datetime | None = None,
) -> list[list[Any]]:
    """One row per arrival. Days Waiting is only filled for waiting/error rows."""
    now = now or utc_now()
    rows = []
    for arrival in arrivals:
        status = classify_arrival(arrival)
        check = latest_check(tracking_records, arrival.get("MRN"))
        days = ""
        if status in (ShipmentStatus.WAITING, ShipmentStatus.ERROR):
            days = days_since_release(arrival.get("GDSREL_DATETIME"), now)

        rows.append(
            [
                _cell(arrival.get("MRN")),
                _cell(arrival.get("DECLARATIONID")),
                arrival.get("COMMERCIALREFERENCE") or "",
                status.label,
                days,
                _cell(arrival.get("TOTAL_PACKAGES")),
                _cell(arrival.get("TOTAL_ITEM_GROSSMASS")),
                _cell(arrival.get("saldo")),
                (check.get("user") or "") if check else "",
                short_date(check.get("timestamp")) if check else "",
                (check.get("note") or "") if check else "",
            ]
        )
    return rows


def to_csv(rows: Iterable[list[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(rows)
    return buffer.getvalue()


def export_filename(now: datetime | None = None) -> str:
    return f"arrivals_export_{(now or utc_now()).date().isoformat()}.csv"
