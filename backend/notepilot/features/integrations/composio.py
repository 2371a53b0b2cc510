"""
Integrations feature: Google Calendar tools supplied by Composio.

The agent core only knows these tools by name and description; their
input contracts come from Composio at runtime as LangChain tools.
Docs: https://docs.composio.dev/toolkits/googlecalendar
"""

import logging
from functools import lru_cache

from langchain_core.tools import BaseTool

from notepilot.config import get_settings
from notepilot.core.exceptions import ConnectorUnavailableError
from notepilot.features.integrations.service import GOOGLE_CALENDAR_PROVIDER

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_ACTIONS = {
    "CREATE_EVENT": "GOOGLECALENDAR_CREATE_EVENT",
    "LIST_EVENTS": "GOOGLECALENDAR_EVENTS_LIST",
    "UPDATE_EVENT": "GOOGLECALENDAR_UPDATE_EVENT",
    "DELETE_EVENT": "GOOGLECALENDAR_DELETE_EVENT",
    "GET_EVENT": "GOOGLECALENDAR_EVENTS_GET",
    "FIND_EVENT": "GOOGLECALENDAR_FIND_EVENT",
}


@lru_cache
def get_composio_client():
    """Composio client with the LangChain provider (singleton)."""
    settings = get_settings()
    if not settings.COMPOSIO_API_KEY:
        raise ConnectorUnavailableError(GOOGLE_CALENDAR_PROVIDER, "COMPOSIO_API_KEY not configured")

    from composio import Composio
    from composio_langchain import LangchainProvider

    return Composio(api_key=settings.COMPOSIO_API_KEY, provider=LangchainProvider())


def get_google_calendar_tools(user_id: str) -> list[BaseTool]:
    """Fetch the Google Calendar tools bound to this user's connected account.

    The user id is the Composio entity id used when the account was linked.

    Raises:
        ConnectorUnavailableError: If Composio is not configured.
        Exception: Whatever the Composio SDK raises on fetch failure.
    """
    client = get_composio_client()
    tools = client.tools.get(
        user_id=user_id,
        tools=list(GOOGLE_CALENDAR_ACTIONS.values()),
    )
    logger.info(f"Retrieved {len(tools)} Google Calendar tools for user {user_id}")
    return list(tools)


GOOGLE_CALENDAR_TOOLKIT = "googlecalendar"
ACTIVE_STATUS = "ACTIVE"


class ComposioCalendarConnector:
    """OAuth account linking for Google Calendar through Composio."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_composio_client()
        return self._client

    def initiate(self, user_id: str, callback_url: str) -> dict:
        """Start the OAuth flow for `user_id`.

        Returns:
            {"redirect_url", "connection_id"}; the user is sent to redirect_url.

        Raises:
            ConnectorUnavailableError: If Composio is not configured or has
                no Google Calendar auth config.
        """
        configs = self.client.auth_configs.list(toolkit_slug=GOOGLE_CALENDAR_TOOLKIT)
        if not configs.items:
            raise ConnectorUnavailableError(GOOGLE_CALENDAR_PROVIDER, "No auth config found for Google Calendar")

        auth_config_id = configs.items[0].id
        logger.info(f"Found Google Calendar auth config {auth_config_id} for user {user_id}")

        request = self.client.connected_accounts.link(
            user_id=user_id,
            auth_config_id=auth_config_id,
            callback_url=callback_url,
        )
        logger.info(f"Initiated Google Calendar connection {request.id} for user {user_id}")
        return {"redirect_url": request.redirect_url, "connection_id": request.id}

    def get_status(self, connection_id: str) -> str:
        return self.client.connected_accounts.get(connection_id).status

    def wait_until_active(self, connection_id: str, timeout: float = 30) -> bool:
        """True once the connected account is ACTIVE, False on timeout or failure."""
        if self.get_status(connection_id) == ACTIVE_STATUS:
            return True

        logger.info(f"Connection {connection_id} not active yet, waiting up to {timeout}s")
        try:
            self.client.connected_accounts.wait_for_connection(connection_id, timeout=timeout)
        except Exception as e:
            logger.warning(f"Waiting for connection {connection_id} failed: {e}")

        status = self.get_status(connection_id)
        if status != ACTIVE_STATUS:
            logger.warning(f"Connection {connection_id} ended with status {status}")
        return status == ACTIVE_STATUS


def get_calendar_connector() -> ComposioCalendarConnector:
    """Dependency: connector backed by the shared Composio client."""
    return ComposioCalendarConnector()
