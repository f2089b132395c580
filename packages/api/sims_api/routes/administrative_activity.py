# This project was developed with assistance from AI tools.
"""Administrative activity routes (system access requests)."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sims_db import get_db
from sims_db.enums import AdministrativeActivityStatus, AdministrativeActivityType
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_identity_source, get_user_guid, get_user_identifier
from ..middleware.auth import Authorized, authorize
from ..schemas.administrative_activity import (
    AccessRequestApproval,
    AccessRequestCreate,
    AccessRequestCreated,
    AccessRequestStanding,
    AdministrativeActivityResponse,
)
from ..schemas.auth import AuthorizationContext
from ..services import administrative_activity as activity_service
from ..services.administrative_activity import InvalidStatusTransitionError
from ..services.gcnotify import send_access_approval_email, send_access_request_email
from ._schemes import data_administrator

router = APIRouter()


def _not_found(activity_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Administrative activity {activity_id} not found",
    )


@router.post(
    "/administrative-activity",
    response_model=AccessRequestCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_access_request(
    body: AccessRequestCreate,
    auth: Authorized,
    session: AsyncSession = Depends(get_db),
) -> AccessRequestCreated:
    """Submit a system access request for the caller and notify the administrators."""
    identifier = get_user_identifier(auth.token)
    if not identifier:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required user identifier",
        )

    data = body.model_dump()
    data.update(
        {
            "userGuid": get_user_guid(auth.token),
            "username": identifier,
            "identitySource": get_identity_source(auth.token).value,
        }
    )
    activity = await activity_service.create_access_request(
        session, data, auth.system_user.id if auth.system_user else None
    )
    await session.commit()

    await send_access_request_email()
    return AccessRequestCreated(id=activity.id, date=activity.create_date)


@router.get("/administrative-activity", response_model=AccessRequestStanding)
async def get_access_request_standing(
    auth: Authorized,
    session: AsyncSession = Depends(get_db),
) -> AccessRequestStanding:
    """Whether the caller is waiting on access or already belongs to a project."""
    identifier = get_user_identifier(auth.token)
    if not identifier:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required user identifier",
        )
    standing = await activity_service.get_access_request_standing(
        session, identifier, auth.system_user.id if auth.system_user else None
    )
    return AccessRequestStanding(**standing)


@router.get("/administrative-activities", response_model=list[AdministrativeActivityResponse])
async def list_administrative_activities(
    activity_type: AdministrativeActivityType | None = Query(default=None, alias="type"),
    status_filter: list[AdministrativeActivityStatus] | None = Query(default=None, alias="status"),
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> list[AdministrativeActivityResponse]:
    activities = await activity_service.list_administrative_activities(
        session, activity_type=activity_type, statuses=status_filter
    )
    return [AdministrativeActivityResponse.model_validate(a) for a in activities]


@router.put(
    "/administrative-activity/{administrative_activity_id}/approve",
    response_model=AdministrativeActivityResponse,
)
async def approve_access_request(
    administrative_activity_id: int,
    body: AccessRequestApproval,
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> AdministrativeActivityResponse:
    """Grant access: provision the requester, add roles, mark the request Actioned."""
    try:
        result = await activity_service.approve_access_request(
            session,
            administrative_activity_id,
            body.role_ids,
            auth.system_user.id if auth.system_user else None,
        )
    except InvalidStatusTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if result is None:
        raise _not_found(administrative_activity_id)
    await session.commit()

    activity, system_user = result
    email = system_user.email or (activity.data or {}).get("email")
    if email:
        await send_access_approval_email(email)
    return AdministrativeActivityResponse.model_validate(activity)


@router.put(
    "/administrative-activity/{administrative_activity_id}/reject",
    response_model=AdministrativeActivityResponse,
)
async def reject_access_request(
    administrative_activity_id: int,
    auth: AuthorizationContext = Depends(authorize(data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> AdministrativeActivityResponse:
    try:
        activity = await activity_service.reject_access_request(
            session,
            administrative_activity_id,
            auth.system_user.id if auth.system_user else None,
        )
    except InvalidStatusTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    if activity is None:
        raise _not_found(administrative_activity_id)
    await session.commit()
    return AdministrativeActivityResponse.model_validate(activity)
