"""시프트 시간 계산 유틸리티 모듈.

Shift time utility module.
Pure helpers for weekday numbering, overnight windows, UTC instant
resolution in a facility's timezone, shift duration/time-slot labels and
the deterministic keys that make instance generation idempotent.

Weekdays use 0 = Sunday … 6 = Saturday throughout the engine.
"""

from datetime import date, datetime, time, timedelta, timezone
from uuid import NAMESPACE_URL, UUID, uuid5
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.utils.exceptions import ValidationError


def weekday_number(d: date) -> int:
    """날짜의 요일 번호를 반환합니다 (0=일요일).

    Return the weekday number of a date, Sunday = 0.
    """
    return d.isoweekday() % 7


def is_overnight(start_time: time, end_time: time) -> bool:
    """종료 시각이 시작 시각 이전(또는 같으면)이면 자정을 넘는 시프트입니다."""
    return end_time <= start_time


def parse_time(time_str: str | None) -> time | None:
    """시간 문자열을 time 객체로 변환합니다.

    Parse a time string ("HH:MM") to a time object.

    Args:
        time_str: 시간 문자열 "HH:MM" 또는 None (Time string or None)

    Returns:
        time | None: 파싱된 time 객체 또는 None (Parsed time or None)

    Raises:
        ValidationError: 형식이 잘못되었을 때 (When the string is not HH:MM)
    """
    if time_str is None:
        return None
    try:
        hour, minute = (int(part) for part in time_str.split(":")[:2])
        return time(hour, minute)
    except ValueError:
        raise ValidationError(f"invalid time '{time_str}', expected HH:MM", value=time_str)


def format_time(t: time | None) -> str | None:
    """time 객체를 "HH:MM" 문자열로 변환합니다."""
    if t is None:
        return None
    return t.strftime("%H:%M")


def get_zone(tz_name: str) -> ZoneInfo:
    """IANA 시간대 이름을 ZoneInfo로 변환합니다.

    Raises:
        ValidationError: 알 수 없는 시간대 (Unknown timezone name)
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"unknown timezone '{tz_name}'", timezone=tz_name)


def resolve_window(
    shift_date: date,
    start_time: time,
    end_time: time,
    tz_name: str = "UTC",
) -> tuple[datetime, datetime]:
    """시프트의 현지 시각 창을 UTC 시점으로 확정합니다.

    Resolve a local clock window on a calendar date to UTC instants.
    When ``end_time <= start_time`` the shift is overnight and ends on
    ``shift_date + 1``.

    Args:
        shift_date: 근무 날짜 (Calendar date the shift starts on)
        start_time: 시작 시각, 현지 (Local start time)
        end_time: 종료 시각, 현지 (Local end time)
        tz_name: 시설 시간대 (Facility IANA timezone)

    Returns:
        tuple[datetime, datetime]: (시작 UTC, 종료 UTC) (Start and end instants in UTC)
    """
    zone: ZoneInfo = get_zone(tz_name)
    end_date: date = shift_date + timedelta(days=1) if is_overnight(start_time, end_time) else shift_date
    start_local: datetime = datetime.combine(shift_date, start_time, tzinfo=zone)
    end_local: datetime = datetime.combine(end_date, end_time, tzinfo=zone)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """tz 정보가 없는 값(SQLite 등)을 UTC로 간주합니다.

    Treat naive datetimes read back from drivers without timezone support
    as UTC, and convert aware ones to UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def shift_hours(start_time: time, end_time: time) -> float:
    """시프트 근무 시간을 계산합니다 (자정 넘김 포함).

    Compute shift duration in hours, normalizing overnight windows by
    adding 24 hours when the end is not after the start.
    """
    start_minutes: int = start_time.hour * 60 + start_time.minute
    end_minutes: int = end_time.hour * 60 + end_time.minute
    if end_minutes <= start_minutes:
        end_minutes += 24 * 60
    return round((end_minutes - start_minutes) / 60, 2)


def time_slot(start_time: time) -> str:
    """시작 시각 기준 시간대 라벨을 반환합니다.

    morning 06–12, afternoon 12–17, evening 17–22, night otherwise.
    """
    hour: int = start_time.hour
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "night"


def template_shift_key(template_id: UUID, shift_date: date, slot_index: int) -> str:
    """템플릿 인스턴스의 결정적 키를 생성합니다.

    Deterministic key of a template instance — a pure function of
    (template id, calendar date, slot index).
    """
    return f"tpl:{template_id}:{shift_date.isoformat()}:{slot_index}"


def block_shift_key(block_id: UUID, shift_date: date) -> str:
    """블록 시프트 하루치의 결정적 키를 생성합니다."""
    return f"blk:{block_id}:{shift_date.isoformat()}"


def derive_block_id(*parts: object) -> UUID:
    """블록 정의로부터 결정적 블록 ID를 만듭니다.

    The same block definition always maps to the same id, so resubmitting
    a block finds the shifts it already created.
    """
    return uuid5(NAMESPACE_URL, "blk:" + "|".join(str(p) for p in parts))


def horizon_dates(as_of: date, horizon_days: int) -> list[date]:
    """[as_of, as_of + horizon_days) 범위의 날짜 목록을 반환합니다."""
    return [as_of + timedelta(days=offset) for offset in range(max(horizon_days, 0))]
