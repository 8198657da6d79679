"""Follow-up email text for arrivals still waiting on outbound declarations."""

from __future__ import annotations

from typing import Any

from customsops.reconciliation.status import outbounds_count
from customsops.utils.dates import parse_datetime


def short_date(value: Any) -> str:
    """M/D/YYYY, or N/A when the date is missing."""
    moment = parse_datetime(value)
    if moment is None:
        return "N/A"
    return f"{moment.month}/{moment.day}/{moment.year}"


def generate_email_draft(arrival: dict[str, Any], days_waiting: int) -> dict[str, str]:
    """Return {subject, body} for the operator to paste into a mail client."""
    mrn = arrival.get("MRN")
    saldo = arrival.get("saldo")
    subject = f"Action Required: MRN {mrn} - Waiting for Outbounds ({days_waiting} days)"

    body = f"""Dear Team,

This is an automated notification regarding a customs declaration that requires attention.

**Declaration Details:**
- MRN: {mrn}
- Declaration ID: {arrival.get("DECLARATIONID")}
- Commercial Reference: {arrival.get("COMMERCIALREFERENCE") or "N/A"}
- Released Date: {short_date(arrival.get("GDSREL_DATETIME"))}
- Days Waiting: {days_waiting} days

**Current Status:**
- Total Packages: {arrival.get("TOTAL_PACKAGES") or 0}
- Saldo (Remaining): {saldo or 0} packages
- Outbounds Declared: {outbounds_count(arrival)}

**Issue:**
This shipment has been waiting for outbound declarations for {days_waiting} days. The saldo indicates {saldo} package(s) still need to be declared for outbound.

**Required Action:**
Please review this declaration and:
1. Verify if outbound declarations are pending
2. Check for any documentation issues
3. Contact the relevant parties if necessary
4. Update the system once resolved

Best regards,
Customs Dashboard System"""

    return {"subject": subject, "body": body}
