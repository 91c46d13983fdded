# booking_engine/date_utils.py
import calendar
from datetime import datetime, date
from typing import Optional

DATE_FORMAT = "%Y-%m-%d"

# Slugs de día tal como llegan desde el catálogo multilingüe (en/fr/de)
WEEKDAY_SLUGS = {
    "monday": 1, "tuesday": 2, "wednesday": 3, "thursday": 4,
    "friday": 5, "saturday": 6, "sunday": 7,
    "lundi": 1, "mardi": 2, "mercredi": 3, "jeudi": 4,
    "vendredi": 5, "samedi": 6, "dimanche": 7,
    "montag": 1, "dienstag": 2, "mittwoch": 3, "donnerstag": 4,
    "freitag": 5, "samstag": 6, "sonntag": 7,
}


def parse_iso_date(s) -> Optional[date]:
    """Parse a yyyy-mm-dd string into a date, or return None for falsy input."""
    if s is None or s == "":
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    if not isinstance(s, str):
        raise ValueError(f"Invalid date value: {s!r}")
    try:
        return datetime.strptime(s.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"Invalid date format, expected YYYY-MM-DD: {s!r}")


def parse_weekday(value) -> Optional[int]:
    """Devuelve el día ISO (1=lunes .. 7=domingo) o None si no se reconoce."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 1 <= value <= 7 else None
    text = str(value).strip().lower()
    if text.isdigit():
        number = int(text)
        return number if 1 <= number <= 7 else None
    return WEEKDAY_SLUGS.get(text)


def months_before(day: date, months: int) -> date:
    """Misma fecha `months` meses antes, ajustada al último día del mes si no existe."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))
