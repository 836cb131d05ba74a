import logging
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InvalidTimezoneError
from app.models.company import Company

logger = logging.getLogger(__name__)


def is_valid_timezone(value: Optional[str]) -> bool:
    if not value or not isinstance(value, str):
        return False
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def validate_timezone(value: Optional[str]) -> Optional[str]:
    """Return the trimmed identifier (or None when blank); raise when it is unknown."""
    trimmed = (value or "").strip()
    if not trimmed:
        return None
    if not is_valid_timezone(trimmed):
        raise InvalidTimezoneError(trimmed)
    return trimmed


def convert_date_to_timezone_midnight(run_date: date, time_zone: str) -> datetime:
    """The UTC instant of local midnight in ``time_zone`` on ``run_date``'s calendar day.

    The zone's offset is read by rendering UTC midnight of that day in the zone,
    so the offset in force on that date (DST included) is the one applied.
    """
    base = datetime.combine(run_date, time.min, tzinfo=timezone.utc)
    wall_clock = base.astimezone(ZoneInfo(time_zone)).replace(tzinfo=timezone.utc)
    offset = wall_clock - base
    return base - offset


def determine_scheduled_for(
    run_date: Optional[date],
    time_zone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> datetime:
    if run_date is None:
        return now or datetime.now(timezone.utc)
    if not time_zone:
        return datetime.combine(run_date, time.min, tzinfo=timezone.utc)
    return convert_date_to_timezone_midnight(run_date, time_zone)


def resolve_company_timezone(
    db: Session, company_id: str, override: Optional[str] = None
) -> str:
    if override:
        return override

    company = db.query(Company).filter(Company.id == company_id).first()
    if company and company.time_zone:
        if is_valid_timezone(company.time_zone):
            return company.time_zone
        logger.warning(
            "company_timezone_invalid company_id=%s time_zone=%s", company_id, company.time_zone
        )

    return settings.DEFAULT_TIMEZONE
