# This project was developed with assistance from AI tools.
"""Project participant routes.

Coordinators and Data Administrators manage participants; any project
member may list them. Every change keeps at least one Coordinator on the
project.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sims_db import get_db
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import authorize
from ..schemas.auth import AuthorizationContext, ProjectUser
from ..schemas.participants import (
    ParticipantListResponse,
    ParticipantResponse,
    ParticipantRoleUpdate,
    ParticipantsAdd,
)
from ..services import project_participation
from ..services.project_participation import (
    InvalidProjectRoleError,
    ProjectLeadRequiredError,
    ProjectNotFoundError,
    UnknownSystemUserError,
)
from ._schemes import (
    project_coordinator_or_data_administrator,
    project_member,
    project_member_or_data_administrator,
    survey_member,
)

router = APIRouter()


def _response(participant: ProjectUser) -> ParticipantResponse:
    return ParticipantResponse(**participant.model_dump())


def _caller_id(auth: AuthorizationContext) -> int | None:
    return auth.system_user.id if auth.system_user else None


async def _own_participation(
    session: AsyncSession, project_id: int, auth: AuthorizationContext
) -> ParticipantResponse:
    participant = None
    if auth.system_user is not None:
        participant = await project_participation.get_project_participant(
            session, project_id, auth.system_user.id
        )
    if participant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Caller is not a participant of project {project_id}",
        )
    return _response(participant)


@router.get("/{project_id}/participants", response_model=ParticipantListResponse)
async def list_participants(
    project_id: int,
    auth: AuthorizationContext = Depends(authorize(project_member_or_data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> ParticipantListResponse:
    participants = await project_participation.get_project_participants(session, project_id)
    return ParticipantListResponse(participants=[_response(p) for p in participants])


@router.post(
    "/{project_id}/participants",
    response_model=ParticipantListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_participants(
    project_id: int,
    body: ParticipantsAdd,
    auth: AuthorizationContext = Depends(authorize(project_coordinator_or_data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> ParticipantListResponse:
    """Add participants; users already on the project are left unchanged."""
    try:
        for item in body.participants:
            await project_participation.ensure_project_participant(
                session,
                project_id,
                item.system_user_id,
                item.project_role_id,
                create_user=_caller_id(auth),
            )
    except ProjectNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except (UnknownSystemUserError, InvalidProjectRoleError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    await session.commit()

    participants = await project_participation.get_project_participants(session, project_id)
    return ParticipantListResponse(participants=[_response(p) for p in participants])


@router.get("/{project_id}/participants/self", response_model=ParticipantResponse)
async def get_own_participation(
    project_id: int,
    auth: AuthorizationContext = Depends(authorize(project_member)),
    session: AsyncSession = Depends(get_db),
) -> ParticipantResponse:
    return await _own_participation(session, project_id, auth)


@router.put(
    "/{project_id}/participants/{project_participation_id}",
    response_model=ParticipantResponse,
)
async def update_participant(
    project_id: int,
    project_participation_id: int,
    body: ParticipantRoleUpdate,
    auth: AuthorizationContext = Depends(authorize(project_coordinator_or_data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> ParticipantResponse:
    """Change a participant's project role."""
    try:
        replaced = await project_participation.update_participant_role(
            session,
            project_id,
            project_participation_id,
            body.project_role_id,
            create_user=_caller_id(auth),
        )
    except (ProjectLeadRequiredError, InvalidProjectRoleError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if replaced is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Participant {project_participation_id} not found in project {project_id}",
        )
    await session.commit()

    participant = await project_participation.get_project_participant(
        session, project_id, replaced.system_user_id
    )
    if participant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Participant {project_participation_id} not found in project {project_id}",
        )
    return _response(participant)


@router.delete(
    "/{project_id}/participants/{project_participation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_participant(
    project_id: int,
    project_participation_id: int,
    auth: AuthorizationContext = Depends(authorize(project_coordinator_or_data_administrator)),
    session: AsyncSession = Depends(get_db),
) -> Response:
    try:
        removed = await project_participation.remove_participant(
            session, project_id, project_participation_id
        )
    except ProjectLeadRequiredError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Participant {project_participation_id} not found in project {project_id}",
        )
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{project_id}/survey/{survey_id}/participants/self",
    response_model=ParticipantResponse,
)
async def get_own_survey_participation(
    project_id: int,
    survey_id: int,
    auth: AuthorizationContext = Depends(authorize(survey_member)),
    session: AsyncSession = Depends(get_db),
) -> ParticipantResponse:
    """Return the caller's participation in the project that owns the survey."""
    if await project_participation.get_survey_project_id(session, survey_id) != project_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Survey {survey_id} not found in project {project_id}",
        )
    return await _own_participation(session, project_id, auth)
