"""가용성 판단 서비스 — 직원의 시프트 배정 자격과 시간 중복 검사.

Availability Resolver — Decides whether a worker may be placed on a shift.

Eligibility checks run in order and the first failing one is the reported
reason:

    1. inactive           — 직원 비활성 (worker is not active)
    2. specialty_mismatch — 전문 분야 불일치
    3. facility_mismatch  — 시설 미소속
    4. already_assigned   — 이미 배정됨
    5. time_conflict      — 다른 약속과 시간 중복

Two windows ``[s1, e1)`` and ``[s2, e2)`` overlap iff ``s1 < e2 and s2 < e1``.
Windows are compared as resolved UTC instants, so a shift that crosses
midnight already ends on the following day. Commitments are read for
``shift_date - 1 … shift_date + 1`` so overnight shifts of the previous day
are part of the comparison set.

The functions at module level are pure; ``AvailabilityService`` reads the
directory and the worker's current commitments from the database.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import Shift
from app.repositories.assignment_repository import assignment_repository
from app.repositories.shift_repository import shift_repository
from app.repositories.worker_repository import worker_repository
from app.schemas.shift import EligibleWorkerResponse, ShiftResponse
from app.services.authorization_service import Actor, authorization_service
from app.services.directory_service import WorkerProfile, directory_service, to_profile
from app.services.shift_service import shift_service
from app.utils.exceptions import ConflictError, IneligibleWorkerError, ValidationError
from app.utils.shift_time import ensure_utc, format_time

# 거절 사유별 한 문장 설명 — One-sentence explanation per failing check
REASON_MESSAGES: dict[str, str] = {
    "inactive": "worker is not active",
    "specialty_mismatch": "worker specialty does not match the shift specialty",
    "facility_mismatch": "worker is not associated with the shift's facility",
    "already_assigned": "worker is already assigned to this shift",
}


@dataclass(frozen=True)
class Eligibility:
    """자격 판단 결과.

    Attributes:
        eligible: 배정 가능 여부 (Whether the worker may be placed)
        reason: 첫 번째 실패 사유 코드 (First failing check, None when eligible)
        conflicting_shift: 중복되는 약속 (The overlapping commitment, for time_conflict)
    """

    eligible: bool
    reason: str | None = None
    conflicting_shift: Shift | None = None


ELIGIBLE: Eligibility = Eligibility(eligible=True)


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """반개구간 [s1,e1)과 [s2,e2)가 겹치는지 확인합니다. 맞닿은 구간은 겹치지 않습니다."""
    return start1 < end2 and start2 < end1


def find_conflict(shift: Shift, commitments: Iterable[Shift]) -> Shift | None:
    """후보 시프트와 겹치는 첫 번째 약속을 반환합니다 (후보 자신은 제외)."""
    start: datetime = ensure_utc(shift.start_at)
    end: datetime = ensure_utc(shift.end_at)
    for other in commitments:
        if other.id == shift.id:
            continue
        if intervals_overlap(start, end, ensure_utc(other.start_at), ensure_utc(other.end_at)):
            return other
    return None


def conflicts_with(shift: Shift, commitments: Iterable[Shift]) -> bool:
    """후보 시프트가 약속 중 하나와 겹치면 True."""
    return find_conflict(shift, commitments) is not None


def check_eligibility(
    profile: WorkerProfile,
    shift: Shift,
    assigned_worker_ids: Iterable[UUID],
    commitments: Iterable[Shift],
) -> Eligibility:
    """직원의 시프트 배정 자격을 순서대로 검사합니다.

    Run the eligibility checks in order, short-circuiting on the first
    failure.

    Args:
        profile: 직원 자격 프로필 (Worker eligibility profile)
        shift: 후보 시프트 (Candidate shift)
        assigned_worker_ids: 시프트의 현재 배정 직원 (Current assigned set of the shift)
        commitments: 직원의 다른 약속 (Worker's other committed shifts)

    Returns:
        Eligibility: 판단 결과 (Result with the first failing reason)
    """
    if not profile.is_active:
        return Eligibility(eligible=False, reason="inactive")
    if profile.specialty != shift.specialty:
        return Eligibility(eligible=False, reason="specialty_mismatch")
    if shift.facility_id not in profile.facility_ids:
        return Eligibility(eligible=False, reason="facility_mismatch")
    if profile.id in set(assigned_worker_ids):
        return Eligibility(eligible=False, reason="already_assigned")
    conflict: Shift | None = find_conflict(shift, commitments)
    if conflict is not None:
        return Eligibility(eligible=False, reason="time_conflict", conflicting_shift=conflict)
    return ELIGIBLE


def order_eligible(candidates: Iterable[tuple[WorkerProfile, bool]]) -> list[tuple[WorkerProfile, bool]]:
    """배정 후보를 정렬합니다.

    Favorites first, then reliability score descending (missing scores
    last), then worker id as a stable tiebreak.
    """
    return sorted(
        candidates,
        key=lambda c: (
            not c[1],
            c[0].reliability_score is None,
            -(c[0].reliability_score or 0.0),
            str(c[0].id),
        ),
    )


def commitment_window(shift_date: date) -> tuple[date, date]:
    """중복 검사 대상 날짜 범위 — Dates whose commitments can overlap a shift on ``shift_date``."""
    return shift_date - timedelta(days=1), shift_date + timedelta(days=1)


def raise_for(eligibility: Eligibility, shift: Shift, worker_id: UUID, verb: str = "assign") -> None:
    """판단 결과가 거절이면 해당 엔진 오류를 발생시킵니다.

    Raises:
        ConflictError: 시간 중복 (time_conflict)
        IneligibleWorkerError: 그 외 사유 (Any other failing check)
    """
    if eligibility.eligible:
        return
    if eligibility.reason == "time_conflict":
        other: Shift = eligibility.conflicting_shift
        raise ConflictError(
            f"cannot {verb}: worker already has a shift from "
            f"{format_time(other.start_time)}-{format_time(other.end_time)} on {other.shift_date.isoformat()}",
            reason="time_conflict",
            shift_id=str(shift.id),
            worker_id=str(worker_id),
            conflicting_shift_id=str(other.id),
        )
    raise IneligibleWorkerError(
        f"cannot {verb}: {REASON_MESSAGES[eligibility.reason]}",
        reason=eligibility.reason,
        shift_id=str(shift.id),
        worker_id=str(worker_id),
    )


class AvailabilityService:
    """가용성 판단 서비스 (Database-backed availability resolver)."""

    async def is_eligible(
        self,
        db: AsyncSession,
        worker_id: UUID,
        shift: Shift,
        lock: bool = False,
    ) -> Eligibility:
        """직원이 시프트에 배정 가능한지 판단합니다.

        Read the worker profile, the shift's current assigned set and the
        worker's current commitments, then run the checks. With ``lock``
        the worker row stays locked for the rest of the transaction, so a
        concurrent assignment of the same worker waits for this one.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            worker_id: 직원 ID (Worker UUID)
            shift: 후보 시프트 (Candidate shift)
            lock: 직원 행 잠금 (Lock the worker row)

        Returns:
            Eligibility: 판단 결과 (Result)
        """
        profile: WorkerProfile = await directory_service.get_worker_profile(db, worker_id, lock=lock)
        assigned: dict[UUID, list[UUID]] = await assignment_repository.get_worker_ids(db, [shift.id])
        date_from, date_to = commitment_window(shift.shift_date)
        commitments: list[Shift] = await assignment_repository.get_commitments(
            db, worker_id, date_from, date_to, exclude_shift_id=shift.id
        )
        return check_eligibility(profile, shift, assigned.get(shift.id, []), commitments)

    async def ensure_eligible(
        self,
        db: AsyncSession,
        worker_id: UUID,
        shift: Shift,
        lock: bool = True,
        verb: str = "assign",
    ) -> None:
        """배정 자격이 없으면 오류를 발생시킵니다.

        Raises:
            IneligibleWorkerError: 자격 미충족 (Eligibility check failed)
            ConflictError: 시간 중복 (Overlapping commitment)
        """
        eligibility: Eligibility = await self.is_eligible(db, worker_id, shift, lock=lock)
        raise_for(eligibility, shift, worker_id, verb)

    async def eligible_workers(
        self,
        db: AsyncSession,
        shift_id: UUID,
        actor: Actor,
    ) -> list[EligibleWorkerResponse]:
        """시프트에 배정 가능한 직원 목록을 조회합니다.

        Candidates are the workers associated with the shift's facility;
        the list is ordered for presentation (favorites, reliability, id).

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            shift_id: 시프트 ID (Shift UUID)
            actor: 수행자 (Actor)

        Returns:
            list[EligibleWorkerResponse]: 배정 가능 직원 (Eligible workers)
        """
        authorization_service.require(actor, "shifts:assign")
        shift: Shift = await shift_service.load(db, shift_id)
        assigned: dict[UUID, list[UUID]] = await assignment_repository.get_worker_ids(db, [shift.id])
        date_from, date_to = commitment_window(shift.shift_date)

        eligible: list[tuple[WorkerProfile, bool]] = []
        for worker, is_favorite in await worker_repository.get_facility_candidates(db, shift.facility_id):
            facility_ids: list[UUID] = await worker_repository.get_facility_ids(db, worker.id)
            profile: WorkerProfile = to_profile(worker, facility_ids)
            commitments: list[Shift] = await assignment_repository.get_commitments(
                db, worker.id, date_from, date_to, exclude_shift_id=shift.id
            )
            if check_eligibility(profile, shift, assigned.get(shift.id, []), commitments).eligible:
                eligible.append((profile, is_favorite))

        return [
            EligibleWorkerResponse(
                worker_id=str(profile.id),
                full_name=profile.full_name,
                specialty=profile.specialty,
                reliability_score=profile.reliability_score,
                is_favorite=is_favorite,
            )
            for profile, is_favorite in order_eligible(eligible)
        ]

    async def worker_commitments(
        self,
        db: AsyncSession,
        worker_id: UUID,
        actor: Actor,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[ShiftResponse]:
        """직원의 현재 약속 목록을 조회합니다.

        The worker's active assignments on shifts that are not cancelled,
        facility_cancelled or no_show, ordered by start.

        Raises:
            NotFoundError: 직원을 찾을 수 없을 때 (Unknown worker)
        """
        authorization_service.require(actor, "shifts:read")
        authorization_service.require_self(actor, worker_id)
        if date_from is not None and date_to is not None and date_to < date_from:
            raise ValidationError("date_to is before date_from")
        await directory_service.get_worker_profile(db, worker_id)
        shifts: Sequence[Shift] = await assignment_repository.get_commitments(db, worker_id, date_from, date_to)
        return await shift_service.build_responses(db, shifts)

    async def open_shifts_for_worker(
        self,
        db: AsyncSession,
        actor: Actor,
        date_from: date | None = None,
    ) -> list[ShiftResponse]:
        """직원이 신청할 수 있는 열린 시프트 목록을 조회합니다.

        Open or requested shifts at the worker's facilities, in the worker's
        specialty, that the worker could request right now. An inactive
        worker sees nothing.

        Raises:
            ForbiddenError: 직원 ID가 없는 수행자 (Actor does not act as a worker)
        """
        authorization_service.require(actor, "shifts:request")
        worker_id: UUID = authorization_service.worker_id_of(actor)
        profile: WorkerProfile = await directory_service.get_worker_profile(db, worker_id)
        if not profile.is_active:
            return []
        start: date = date_from or datetime.now(timezone.utc).date()
        shifts: list[Shift] = await shift_repository.get_open_for_specialty(
            db, profile.specialty, list(profile.facility_ids), start
        )
        assigned: dict[UUID, list[UUID]] = await assignment_repository.get_worker_ids(db, [s.id for s in shifts])
        commitments: list[Shift] = await assignment_repository.get_commitments(
            db, worker_id, start - timedelta(days=1)
        )
        available: list[Shift] = [
            s for s in shifts if check_eligibility(profile, s, assigned.get(s.id, []), commitments).eligible
        ]
        return await shift_service.build_responses(db, available)


# 싱글턴 인스턴스 — Singleton instance
availability_service: AvailabilityService = AvailabilityService()
