"""fp_trainer_offert REST API — offert catalog and trainer subscriptions."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.database import get_db_session
from src.fp_common.enums import UserRole
from src.fp_common.response import ApiResponse, success_response
from src.fp_gateway.auth.dependencies import CurrentUser, get_current_user, require_roles
from src.fp_trainer_offert.application.offert_service import OffertApplicationService
from src.fp_trainer_offert.application.schemas import (
    CreateOffertRequest,
    ProvisionSubscriptionRequest,
    UpdateOffertRequest,
)
from src.fp_trainer_offert.application.subscription_service import (
    SubscriptionApplicationService,
)

router = APIRouter(prefix="/trainer-offerts", tags=["trainer-offerts"])

_offert_service = OffertApplicationService()
_subscription_service = SubscriptionApplicationService()


def get_offert_service() -> OffertApplicationService:
    return _offert_service


def get_subscription_service() -> SubscriptionApplicationService:
    return _subscription_service


OffertServiceDep = Annotated[OffertApplicationService, Depends(get_offert_service)]
SubscriptionServiceDep = Annotated[
    SubscriptionApplicationService, Depends(get_subscription_service)
]
UserDep = Annotated[CurrentUser, Depends(get_current_user)]
TrainerDep = Annotated[CurrentUser, Depends(require_roles(UserRole.TRAINER))]
AdminDep = Annotated[CurrentUser, Depends(require_roles(UserRole.ADMIN))]
DbDep = Annotated[AsyncSession, Depends(get_db_session)]

# ---------------------------------------------------------------------------
# Subscriptions (declared before /{offert_id})
# ---------------------------------------------------------------------------


@router.get("/subscriptions")
async def list_subscriptions(
    current_user: UserDep,
    db: DbDep,
    service: SubscriptionServiceDep,
    request: Request,
    active_only: bool = Query(False, description="Only active subscriptions"),
) -> ApiResponse:
    data = await service.list_user_subscriptions(db, current_user.user_id, active_only)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/subscriptions", status_code=201)
async def provision_subscription(
    body: ProvisionSubscriptionRequest,
    current_user: AdminDep,
    db: DbDep,
    service: SubscriptionServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.create_subscription_from_payment(
        db, user_id=body.user_id, offert_id=body.offert_id, payment_id=body.payment_id
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/subscriptions/{subscription_id}/cancel")
async def cancel_subscription(
    subscription_id: str,
    current_user: UserDep,
    db: DbDep,
    service: SubscriptionServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.cancel_subscription(
        db, subscription_id, current_user.user_id, is_admin=current_user.is_admin
    )
    return success_response(data.model_dump(mode="json"), request)


# ---------------------------------------------------------------------------
# Offerts
# ---------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_offert(
    body: CreateOffertRequest,
    current_user: TrainerDep,
    db: DbDep,
    service: OffertServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.create_offert(
        db,
        trainer_id=current_user.user_id,
        title=body.title,
        description=body.description,
        price_cents=body.price_cents,
        currency=body.currency,
        duration_in_days=body.duration_in_days,
        includes_bookings=body.includes_bookings,
        booking_quota=body.booking_quota,
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("")
async def list_offerts(
    db: DbDep,
    service: OffertServiceDep,
    request: Request,
    current_user: UserDep,
    trainer_id: str | None = Query(None, description="Filter by trainer"),
    active_only: bool = Query(True, description="Hide deactivated offerts"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await service.list_offerts(db, trainer_id, active_only, cursor, limit)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{offert_id}")
async def get_offert(
    offert_id: str,
    current_user: UserDep,
    db: DbDep,
    service: OffertServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.get_offert(db, offert_id)
    return success_response(data.model_dump(mode="json"), request)


@router.patch("/{offert_id}")
async def update_offert(
    offert_id: str,
    body: UpdateOffertRequest,
    current_user: TrainerDep,
    db: DbDep,
    service: OffertServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.update_offert(
        db, offert_id, current_user.user_id, body.model_dump(exclude_none=True)
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{offert_id}/activate")
async def activate_offert(
    offert_id: str,
    current_user: TrainerDep,
    db: DbDep,
    service: OffertServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.activate_offert(db, offert_id, current_user.user_id)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{offert_id}/deactivate")
async def deactivate_offert(
    offert_id: str,
    current_user: TrainerDep,
    db: DbDep,
    service: OffertServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.deactivate_offert(db, offert_id, current_user.user_id)
    return success_response(data.model_dump(mode="json"), request)
