from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from subtracker.db import get_db
from subtracker.dependencies import get_current_user
from subtracker.models.user import User
from subtracker.schemas.user import UserProfileResponse, UserProfileUpdate

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_profile(
    current_user: User = Depends(get_current_user),
):
    """Get the current user's profile."""
    return current_user


@router.put("/me", response_model=UserProfileResponse)
async def update_profile(
    profile: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update username, budget, location, currency or timezone."""
    update_data = {
        field: value
        for field, value in profile.model_dump(exclude_unset=True).items()
        if value is not None or field in ("monthly_budget", "location")
    }
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No valid fields to update",
        )

    username = update_data.get("username")
    if username:
        taken = (
            db.query(User)
            .filter(User.username == username, User.id != current_user.id)
            .first()
        )
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username already taken",
            )

    for field, value in update_data.items():
        if hasattr(value, "value"):  # Handle enums
            value = value.value
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    return current_user
