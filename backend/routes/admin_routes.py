import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from backend.auth.dependencies import get_user_store, require_admin
from backend.auth.user_store import UserStore
from backend.models.user import User, UserRole

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)


class AdminUserResponse(BaseModel):
    # No password_hash field: it can never be serialized from here.
    id: int
    fullname: str
    email: str
    phone: str
    cet_roll_number: str = Field(alias='cetRollNumber')
    category: str
    role: UserRole
    created_at: datetime = Field(alias='createdAt')
    updated_at: datetime = Field(alias='updatedAt')

    class Config:
        from_attributes = True
        populate_by_name = True


class AdminUserListResponse(BaseModel):
    success: bool
    users: list[AdminUserResponse]


@router.get('/users', response_model=AdminUserListResponse)
def list_users(
    _admin: User = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
):
    try:
        records = users.list_all()
    except SQLAlchemyError as exc:
        logger.exception('Listing users failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    return AdminUserListResponse(
        success=True,
        users=[AdminUserResponse.model_validate(record) for record in records],
    )
