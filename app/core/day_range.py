# app/core/day_range.py
"""Нормализация дат посещаемости.

Любое представление даты сводится к полуоткрытому интервалу
[полночь UTC, полночь UTC + 24ч). В базе хранится только ``start``,
поэтому "2025-01-05T14:30:00Z" и "2025-01-05" дают одну и ту же запись.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from email.utils import parsedate_to_datetime

from app.core.errors import InvalidDate

ONE_DAY = timedelta(days=1)

# ISO только с дефисами: компактное "20250310" не принимаем
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
SLASH_FORMATS = ("%Y/%m/%d", "%Y/%m/%d %H:%M", "%Y/%m/%d %H:%M:%S")


@dataclass(frozen=True)
class DayRange:
    start: datetime
    end: datetime

    @property
    def day(self) -> date:
        return self.start.date()


def _parse_date_string(text: str) -> datetime | None:
    """ISO 8601, "2025/03/10[ 14:30[:00]]" или RFC 2822 ("Mon, 10 Mar 2025 ...").

    Строки без часового пояса считаются UTC.
    """
    if ISO_DATE.match(text):
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None

    for fmt in SLASH_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    if text[:1].isdigit() and text.replace(".", "").isdigit():
        return None
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None


def _to_utc_datetime(value) -> datetime:
    # bool — подкласс int, его не считаем меткой времени
    if isinstance(value, bool) or value is None:
        raise InvalidDate(f"Некорректная дата: {value!r}")

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, (int, float)):
        # Клиенты присылают миллисекунды (как Date.now() в браузере)
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            raise InvalidDate(f"Некорректная метка времени: {value!r}")

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDate("Пустая дата")
        parsed = _parse_date_string(text)
        if parsed is None:
            raise InvalidDate(f"Некорректная дата: {value!r}")
        return _to_utc_datetime(parsed)

    raise InvalidDate(f"Неподдерживаемый тип даты: {type(value).__name__}")


def to_day_range(value) -> DayRange:
    moment = _to_utc_datetime(value)
    start = datetime(moment.year, moment.month, moment.day)
    return DayRange(start=start, end=start + ONE_DAY)


def as_utc(value: datetime | None) -> datetime | None:
    """Хранимые значения наивные (UTC); при выдаче добавляем tzinfo."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
