import logging
from typing import Optional

from fastapi import Request
from supabase import create_client, Client
from app.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """Explicit store handle; opened on startup, closed on shutdown, injected per request."""

    def __init__(self, settings: Settings, client: Optional[Client] = None):
        self.settings = settings
        self._client = client

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self) -> Client:
        if self._client is None:
            # Service role key bypasses RLS; the backend owns every table it writes
            key = self.settings.supabase_service_role_key or self.settings.supabase_key
            self._client = create_client(self.settings.supabase_url, key)
            logger.info("Supabase client opened for %s", self.settings.supabase_url)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            logger.info("Supabase client closed")
        self._client = None

    @property
    def client(self) -> Client:
        if self._client is None:
            raise RuntimeError("Database handle is not open")
        return self._client


def get_supabase(request: Request) -> Client:
    return request.app.state.database.client
