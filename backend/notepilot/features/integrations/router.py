"""
Integrations feature: API routes for connecting Google Calendar.

  POST   /google-calendar/connect   → Composio OAuth URL, row saved as pending
  GET    /google-calendar/callback  → Composio redirect, row activated
  DELETE /google-calendar           → row revoked
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from supabase import Client

from notepilot.config import get_settings
from notepilot.core.dependencies import get_admin_db, get_current_user_id, get_db
from notepilot.core.exceptions import AppBaseError, app_error_to_http
from notepilot.features.integrations.composio import ComposioCalendarConnector, get_calendar_connector
from notepilot.features.integrations.service import GOOGLE_CALENDAR_PROVIDER, IntegrationsService

logger = logging.getLogger(__name__)

router = APIRouter()

CALLBACK_PATH = "/api/integrations/google-calendar/callback"
FAILED_OAUTH_STATUSES = ("failed", "error")


def integrations_page(**params: str) -> RedirectResponse:
    query = "&".join(f"{key}={value}" for key, value in params.items())
    return RedirectResponse(f"{get_settings().FRONTEND_URL}/integrations?{query}")


@router.get("")
async def list_integrations(
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
):
    """All of the user's integrations with their status."""
    integrations = IntegrationsService(db).list_for_user(user_id)
    logger.debug(f"Fetched {len(integrations)} integrations for user {user_id}")
    return {"integrations": integrations}


@router.post("/google-calendar/connect")
async def connect_google_calendar(
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
    connector: ComposioCalendarConnector = Depends(get_calendar_connector),
):
    """Start the Google Calendar OAuth flow; the client navigates to redirect_url."""
    callback_url = f"{get_settings().APP_URL}{CALLBACK_PATH}"
    try:
        connection = await asyncio.to_thread(connector.initiate, user_id, callback_url)
    except AppBaseError as e:
        logger.error(f"Google Calendar connect failed for user {user_id}: {e.message} ({e.detail})")
        raise app_error_to_http(e, status_code=503)
    except Exception as e:
        logger.error(f"Failed to initiate Google Calendar connection for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to initiate connection")

    if not connection["redirect_url"]:
        raise HTTPException(status_code=502, detail="Failed to get redirect URL")

    IntegrationsService(db).save_pending(user_id, GOOGLE_CALENDAR_PROVIDER, connection["connection_id"])
    logger.info(f"Google Calendar connection {connection['connection_id']} pending for user {user_id}")
    return {
        "redirect_url": connection["redirect_url"],
        "connection_id": connection["connection_id"],
    }


@router.get("/google-calendar/callback")
async def google_calendar_callback(
    connected_account_id: str | None = None,
    status: str | None = None,
    db: Client = Depends(get_admin_db),
    connector: ComposioCalendarConnector = Depends(get_calendar_connector),
):
    """Composio redirects here after OAuth; always answers with a redirect to the app."""
    if not connected_account_id:
        logger.warning("Google Calendar callback without connection id")
        return integrations_page(error="missing_connection_id")

    if status in FAILED_OAUTH_STATUSES:
        logger.warning(f"Google Calendar OAuth failed for connection {connected_account_id}: {status}")
        return integrations_page(error="oauth_failed")

    integrations = IntegrationsService(db)
    pending = integrations.find_by_connected_account(connected_account_id)
    if not pending:
        logger.error(f"No pending integration for connection {connected_account_id}")
        return integrations_page(error="missing_pending_integration")

    try:
        active = await asyncio.to_thread(connector.wait_until_active, connected_account_id)
    except Exception as e:
        logger.error(f"Google Calendar callback failed for connection {connected_account_id}: {e}", exc_info=True)
        return integrations_page(error="callback_failed")

    if not active:
        return integrations_page(error="connection_timeout")

    integrations.set_status(pending["id"], "active")
    logger.info(f"Google Calendar integration {pending['id']} active for user {pending['user_id']}")
    return integrations_page(success="connected")


@router.delete("/google-calendar")
async def disconnect_google_calendar(
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
):
    """Revoke the integration; the row is kept for history."""
    revoked = IntegrationsService(db).revoke(user_id, GOOGLE_CALENDAR_PROVIDER)
    if not revoked:
        raise HTTPException(status_code=404, detail="Integration not found")

    logger.info(f"Google Calendar integration {revoked['id']} revoked for user {user_id}")
    return {"success": True}
