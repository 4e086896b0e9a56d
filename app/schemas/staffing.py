"""스태핑(충원) 투영 Pydantic 스키마.

Staffing projection schemas. These are read-only derivations of a shift's
assignment count; they never carry workflow status authority.
"""

from datetime import date

from pydantic import BaseModel


class StaffingResponse(BaseModel):
    """시프트 충원 현황 스키마.

    Staffing projection of one shift.

    Attributes:
        assigned: 배정 인원 (Active assignments)
        required: 필요 인원 (Required staff)
        percent_filled: 충원율 % (round half up, 0 when required is 0)
        is_fully_staffed: 충원 완료 여부 (assigned >= required)
        still_needed: 추가 필요 인원 (max(0, required - assigned))
        display_status: 표시 상태 (Terminal workflow status, else unfilled / partially_filled / filled)
    """

    assigned: int
    required: int
    percent_filled: int
    is_fully_staffed: bool
    still_needed: int
    display_status: str


class DateStaffingResponse(BaseModel):
    """시설 일자별 충원 요약 스키마.

    Staffing summary of a facility on one date, over shifts that are not
    cancelled, facility_cancelled or no_show.
    """

    facility_id: str  # 시설 UUID 문자열 (Facility UUID as string)
    date: date  # 대상 날짜 (Summary date)
    shift_count: int  # 시프트 수 (Shifts counted)
    required: int  # 필요 인원 합계 (Sum of required staff)
    assigned: int  # 배정 인원 합계 (Sum of assignments)
    still_needed: int  # 추가 필요 인원 합계 (Sum of still needed per shift)
    percent_filled: int  # 전체 충원율 (Aggregate percent filled)
    fully_staffed_shifts: int  # 충원 완료 시프트 수 (Shifts at or above required)
