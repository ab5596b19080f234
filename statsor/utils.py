from datetime import datetime
from typing import Optional

# Accepted input formats for match dates, normalised to ISO
DATE_FORMATS = [
    "%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d",
    "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y",
    "%d %b %Y", "%d %B %Y",
    "%b %d, %Y", "%B %d, %Y",
]


def parse_input_date(date_input: str) -> Optional[str]:
    """Parse a date in any accepted format to ISO (YYYY-MM-DD); None if unparseable"""
    if not isinstance(date_input, str) or not date_input.strip():
        return None
    value = date_input.strip()

    # Full ISO timestamps are kept as-is
    if 'T' in value:
        try:
            datetime.fromisoformat(value)
            return value
        except ValueError:
            return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None

