from typing import Annotated

from fastapi import APIRouter, Depends

from src.user.auth.permissions.checker import require_read_permissions
from src.user.auth.permissions.hierarchy import get_role_rank
from src.user.auth.permissions.role_matrix import permissions_for_role
from src.user.auth.routers import router as auth_router
from src.user.auth.schemas import AuthIdentity, IdentityViewModel

router = APIRouter()

router.include_router(auth_router, prefix="/auth")


@router.get("/me", response_model=IdentityViewModel)
async def get_current_identity_profile(
    identity: Annotated[AuthIdentity, Depends(require_read_permissions)],
) -> IdentityViewModel:
    """
    Returns the authenticated caller with their rank and effective permissions.
    """
    return IdentityViewModel(
        subject_id=identity.subject_id,
        email=identity.email,
        role=identity.role,
        rank=get_role_rank(identity.role),
        permissions=sorted(permissions_for_role(identity.role)),
        token_expiring_soon=identity.token_expiring_soon,
    )
