"""Role listing, creation, update, and assignment."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.deps import AuthContext, CurrentAuth, require_permission
from app.core.database import get_db
from app.schemas.auth import SessionUser
from app.schemas.roles import RoleAssignRequest, RoleCreate, RoleOut, RoleResponse, RoleUpdate
from app.schemas.users import UserResponse
from app.services import roles as role_service
from app.services.users import assign_role

router = APIRouter()


@router.get("", response_model=list[RoleOut])
def list_roles(
    _ctx: CurrentAuth,
    db: Annotated[Session, Depends(get_db)],
) -> list[RoleOut]:
    return [RoleOut.model_validate(r) for r in role_service.list_active_roles(db)]


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreate,
    _ctx: Annotated[AuthContext, Depends(require_permission("role:manage"))],
    db: Annotated[Session, Depends(get_db)],
) -> RoleResponse:
    role = role_service.create_role(
        db,
        name=body.name,
        display_name=body.display_name,
        description=body.description,
        permissions=body.permissions,
        hierarchy_level=body.hierarchy_level,
    )
    return RoleResponse(message="Role created successfully", role=RoleOut.model_validate(role))


@router.put("/{role_id}", response_model=RoleResponse)
def update_role(
    role_id: int,
    body: RoleUpdate,
    _ctx: Annotated[AuthContext, Depends(require_permission("role:manage"))],
    db: Annotated[Session, Depends(get_db)],
) -> RoleResponse:
    role = role_service.update_role(db, role_id, body.model_dump(exclude_unset=True))
    return RoleResponse(message="Role updated successfully", role=RoleOut.model_validate(role))


@router.post("/assign", response_model=UserResponse)
def assign(
    body: RoleAssignRequest,
    ctx: Annotated[AuthContext, Depends(require_permission("role:assign"))],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """Assign a role to a user; the caller must outrank the role being assigned."""
    user = assign_role(db, ctx.user, body.user_id, body.role_id)
    return UserResponse(message="Role assigned successfully", user=SessionUser.model_validate(user))
