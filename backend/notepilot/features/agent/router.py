"""
Agent feature: API route for free-text commands.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from supabase import Client

from notepilot.core.dependencies import get_current_user_id, get_db
from notepilot.core.exceptions import AppBaseError, app_error_to_http
from notepilot.features.agent.results import AgentResponse
from notepilot.features.agent.service import AgentService

logger = logging.getLogger(__name__)

router = APIRouter()


class ProcessRequest(BaseModel):
    input: str = Field(min_length=1)
    timezone: str | None = None  # IANA name, e.g. "Europe/Paris"


def get_agent_service(db: Client = Depends(get_db)) -> AgentService:
    return AgentService(db)


@router.post("/process", response_model=AgentResponse)
async def process_input(
    data: ProcessRequest,
    user_id: str = Depends(get_current_user_id),
    agent: AgentService = Depends(get_agent_service),
):
    """Run the agent once over the user's text."""
    try:
        return await agent.handle(user_id, data.input, data.timezone)
    except AppBaseError as e:
        logger.error(f"Agent request failed for user {user_id}: {e.message} ({e.detail})")
        raise app_error_to_http(e, status_code=500)
