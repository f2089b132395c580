# This project was developed with assistance from AI tools.
"""Liveness and database health."""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sims_db import get_db
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import __version__

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthItem(BaseModel):
    name: str
    status: str
    message: str
    version: str | None = None


@router.get("/", response_model=list[HealthItem])
async def health(session: AsyncSession = Depends(get_db)) -> list[HealthItem]:
    """Report API and database health. Always 200; unhealthy parts are flagged."""
    items = [
        HealthItem(
            name="API", status="healthy", message="SIMS API is running", version=__version__
        )
    ]
    try:
        result = await session.execute(text("SELECT version()"))
        items.append(HealthItem(name="Database", status="healthy", message=str(result.scalar())))
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed: %s", exc)
        items.append(
            HealthItem(name="Database", status="unhealthy", message="Database unreachable")
        )
    return items
