"""Admin REST API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_admin.application.service import AdminService
from src.fp_common.database import get_db_session
from src.fp_common.enums import UserRole
from src.fp_common.response import ApiResponse, success_response
from src.fp_gateway.auth.dependencies import CurrentUser, require_roles

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


def get_admin_service() -> AdminService:
    return _service


@router.get("/invariants")
async def verify_invariants(
    current_user: Annotated[CurrentUser, Depends(require_roles(UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
    request: Request,
) -> ApiResponse:
    result = await service.verify_ledger_invariants(db)
    return success_response(result, request)
