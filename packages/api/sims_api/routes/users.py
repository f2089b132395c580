# This project was developed with assistance from AI tools.
"""System user routes."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sims_db import get_db
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import Authorized, authorize
from ..schemas.auth import AuthorizationContext, SystemUserContext
from ..schemas.participants import ParticipantListResponse, ParticipantResponse
from ..schemas.user import SystemRolesUpdate, SystemUserCreate, SystemUserResponse
from ..services import project_participation
from ..services import user as user_service
from ..services.project_participation import ProjectLeadRequiredError
from ..services.user import InvalidSystemRoleError
from ._schemes import data_administrator

router = APIRouter()


def _response(user: SystemUserContext) -> SystemUserResponse:
    return SystemUserResponse(**user.model_dump())


def _not_found(system_user_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"System user {system_user_id} not found",
    )


@router.get("/self", response_model=SystemUserResponse)
async def get_self(auth: Authorized) -> SystemUserResponse:
    """Return the caller's own system user record."""
    if auth.system_user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Caller has no system user",
        )
    return _response(auth.system_user)


@router.get("", response_model=list[SystemUserResponse])
async def list_users(
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> list[SystemUserResponse]:
    users = await user_service.list_system_users(session)
    return [_response(u) for u in users]


@router.post("", response_model=SystemUserResponse, status_code=status.HTTP_201_CREATED)
async def add_user(
    body: SystemUserCreate,
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> SystemUserResponse:
    """Register (or reactivate) a user before their first login and grant roles."""
    user = await user_service.ensure_system_user(
        session,
        body.user_guid,
        body.user_identifier,
        body.identity_source,
        display_name=body.display_name,
        email=body.email,
        acting_user_id=auth.system_user.id if auth.system_user else None,
    )
    if body.role_ids:
        try:
            await user_service.add_system_roles(session, user.id, body.role_ids)
        except InvalidSystemRoleError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )
    await session.commit()

    refreshed = await user_service.get_user_by_id(session, user.id)
    return _response(refreshed or user)


@router.get("/{system_user_id}", response_model=SystemUserResponse)
async def get_user(
    system_user_id: int,
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> SystemUserResponse:
    user = await user_service.get_user_by_id(session, system_user_id)
    if user is None:
        raise _not_found(system_user_id)
    return _response(user)


@router.get("/{system_user_id}/projects", response_model=ParticipantListResponse)
async def get_user_projects(
    system_user_id: int,
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> ParticipantListResponse:
    participations = await project_participation.get_participations_by_system_user(
        session, system_user_id
    )
    return ParticipantListResponse(
        participants=[ParticipantResponse(**p.model_dump()) for p in participations]
    )


@router.put("/{system_user_id}/system-roles", response_model=SystemUserResponse)
async def update_system_roles(
    system_user_id: int,
    body: SystemRolesUpdate,
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> SystemUserResponse:
    """Replace the user's system roles."""
    if await user_service.get_user_by_id(session, system_user_id) is None:
        raise _not_found(system_user_id)

    try:
        await user_service.replace_system_roles(session, system_user_id, body.role_ids)
    except InvalidSystemRoleError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    await session.commit()

    user = await user_service.get_user_by_id(session, system_user_id)
    if user is None:
        raise _not_found(system_user_id)
    return _response(user)


@router.delete("/{system_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user(
    system_user_id: int,
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> Response:
    """Remove a user's roles and project access and deactivate them."""
    try:
        removed = await user_service.delete_system_user(
            session, system_user_id, auth.system_user.id if auth.system_user else None
        )
    except ProjectLeadRequiredError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not removed:
        raise _not_found(system_user_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
