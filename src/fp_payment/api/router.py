"""fp_payment REST API — user endpoints require JWT, the webhook is signed instead."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.database import get_db_session
from src.fp_common.enums import PaymentStatus
from src.fp_common.response import ApiResponse, success_response
from src.fp_gateway.auth.dependencies import CurrentUser, get_current_user
from src.fp_payment.application.schemas import CancelPaymentRequest, CreatePaymentRequest
from src.fp_payment.application.service import PaymentApplicationService

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PaymentApplicationService()


def get_payment_service() -> PaymentApplicationService:
    return _service


ServiceDep = Annotated[PaymentApplicationService, Depends(get_payment_service)]


@router.post("", status_code=201)
async def create_payment(
    body: CreatePaymentRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.create_payment(
        db,
        user_id=current_user.user_id,
        gym_id=body.gym_id,
        amount_cents=body.amount_cents,
        currency=body.currency,
        metadata=body.metadata,
        provider=body.provider,
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    x_signature: Annotated[str | None, Header()] = None,
) -> ApiResponse:
    raw_body = await request.body()
    data = await service.handle_provider_webhook(db, raw_body, x_signature)
    return success_response(data.model_dump(mode="json"), request)


@router.get("")
async def list_payments(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    request: Request,
    status: PaymentStatus | None = Query(None, description="Filter by payment status"),
    start_date: datetime | None = Query(None, description="Created at or after (ISO 8601)"),
    end_date: datetime | None = Query(None, description="Created at or before (ISO 8601)"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await service.list_user_payments(
        db, current_user.user_id, status, start_date, end_date, cursor, limit
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{payment_id}")
async def get_payment(
    payment_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    request: Request,
) -> ApiResponse:
    data = await service.get_payment(
        db, payment_id, current_user.user_id, is_admin=current_user.is_admin
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{payment_id}/cancel")
async def cancel_payment(
    payment_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: ServiceDep,
    request: Request,
    body: Annotated[CancelPaymentRequest | None, Body()] = None,
) -> ApiResponse:
    data = await service.cancel_payment(
        db, payment_id, current_user.user_id, reason=body.reason if body else None
    )
    return success_response(data.model_dump(mode="json"), request)
