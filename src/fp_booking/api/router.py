"""fp_booking REST API — bookings and booking quotas, all require JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_booking.application.booking_service import BookingApplicationService
from src.fp_booking.application.quota_service import QuotaApplicationService
from src.fp_booking.application.schemas import CreateBookingRequest, GenerateQuotasRequest
from src.fp_common.database import get_db_session
from src.fp_common.enums import BookingStatus, UserRole
from src.fp_common.response import ApiResponse, success_response
from src.fp_gateway.auth.dependencies import CurrentUser, get_current_user, require_roles

router = APIRouter(prefix="/bookings", tags=["bookings"])

_booking_service = BookingApplicationService()
_quota_service = QuotaApplicationService()


def get_booking_service() -> BookingApplicationService:
    return _booking_service


def get_quota_service() -> QuotaApplicationService:
    return _quota_service


BookingServiceDep = Annotated[BookingApplicationService, Depends(get_booking_service)]
QuotaServiceDep = Annotated[QuotaApplicationService, Depends(get_quota_service)]
UserDep = Annotated[CurrentUser, Depends(get_current_user)]
AdminDep = Annotated[CurrentUser, Depends(require_roles(UserRole.ADMIN))]
DbDep = Annotated[AsyncSession, Depends(get_db_session)]

# ---------------------------------------------------------------------------
# Quotas (declared before /{booking_id} so "quotas" is not read as an id)
# ---------------------------------------------------------------------------


@router.get("/quotas")
async def list_quotas(
    current_user: UserDep,
    db: DbDep,
    service: QuotaServiceDep,
    request: Request,
    valid_only: bool = Query(False, description="Only quotas usable right now"),
) -> ApiResponse:
    data = await service.list_user_quotas(db, current_user.user_id, valid_only)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/quotas/generate", status_code=201)
async def generate_quotas(
    body: GenerateQuotasRequest,
    current_user: AdminDep,
    db: DbDep,
    service: QuotaServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.generate_booking_quotas(
        db,
        user_id=body.user_id,
        payment_id=body.payment_id,
        total_quotas=body.total_quotas,
        valid_from=body.valid_from,
        valid_until=body.valid_until,
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/quotas/{quota_id}")
async def get_quota(
    quota_id: str,
    current_user: UserDep,
    db: DbDep,
    service: QuotaServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.get_quota(
        db, quota_id, current_user.user_id, is_admin=current_user.is_admin
    )
    return success_response(data.model_dump(mode="json"), request)


@router.delete("/quotas/{quota_id}")
async def purge_quota(
    quota_id: str,
    current_user: AdminDep,
    db: DbDep,
    service: QuotaServiceDep,
    request: Request,
) -> ApiResponse:
    await service.purge_quota(db, quota_id)
    return success_response({"quota_id": quota_id, "deleted": True}, request)


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_booking(
    body: CreateBookingRequest,
    current_user: UserDep,
    db: DbDep,
    service: BookingServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.create_booking(
        db,
        user_id=current_user.user_id,
        trainer_id=body.trainer_id,
        gym_id=body.gym_id,
        date=body.date,
        quota_id=body.quota_id,
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("")
async def list_bookings(
    current_user: UserDep,
    db: DbDep,
    service: BookingServiceDep,
    request: Request,
    as_trainer: bool = Query(False, description="List bookings assigned to me as trainer"),
    gym_id: str | None = Query(None, description="Filter by gym"),
    status: BookingStatus | None = Query(None, description="Filter by booking status"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    user_id, trainer_id = (
        (None, current_user.user_id) if as_trainer else (current_user.user_id, None)
    )
    data = await service.list_bookings(
        db, user_id, trainer_id, gym_id, status, cursor, limit
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    current_user: UserDep,
    db: DbDep,
    service: BookingServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.get_booking(
        db, booking_id, current_user.user_id, is_admin=current_user.is_admin
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    current_user: UserDep,
    db: DbDep,
    service: BookingServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.cancel_booking(
        db, booking_id, current_user.user_id, is_admin=current_user.is_admin
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{booking_id}/confirm")
async def confirm_booking(
    booking_id: str,
    current_user: UserDep,
    db: DbDep,
    service: BookingServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.confirm_booking(
        db, booking_id, current_user.user_id, is_admin=current_user.is_admin
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{booking_id}/complete")
async def complete_booking(
    booking_id: str,
    current_user: UserDep,
    db: DbDep,
    service: BookingServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.complete_booking(
        db, booking_id, current_user.user_id, is_admin=current_user.is_admin
    )
    return success_response(data.model_dump(mode="json"), request)
