"""Utilities for parsing document dates (DD.MM.YYYY and ISO forms)."""

import re
from datetime import date, datetime
from typing import Optional

_DOTTED = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")


def parse_document_date(text: Optional[str]) -> Optional[date]:
    """Parse a date as found on invoices and reference documents.

    Accepted:
    - DD.MM.YYYY (German style, e.g. "05.01.2024")
    - YYYY-MM-DD
    - ISO datetimes ("2024-01-05T10:00:00", time part ignored)

    Returns:
        date, or None for empty/unrecognized/impossible dates
    """
    if not text:
        return None

    raw = text.strip()
    match = _DOTTED.match(raw)
    try:
        if match:
            day, month, year = (int(part) for part in match.groups())
            return date(year, month, day)
        if "T" in raw or " " in raw:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        return date.fromisoformat(raw)
    except ValueError:
        return None
