import os
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

# URL du service (de local à Docker)
USER_SYNC_URL = os.getenv("USER_SYNC_SERVICE_URL", "http://localhost:3080")


class UserClient:
    """Client HTTP du service: fetch_users() et create_user(user)."""

    def __init__(self, base_url: str = USER_SYNC_URL, session: Optional[httpx.Client] = None,
                 trace_id: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self._owns_session = session is None
        self._session = session or httpx.Client()
        self._headers = {"X-Trace-ID": trace_id} if trace_id else {}

    def fetch_users(self) -> List[Any]:
        try:
            resp = self._session.get(f"{self.base_url}/api/users", headers=self._headers)
        except httpx.RequestError as e:
            logger.error(f"Error calling user sync service: {str(e)}")
            raise
        resp.raise_for_status()
        return resp.json()

    def create_user(self, user: Dict[str, Any]) -> str:
        try:
            resp = self._session.post(f"{self.base_url}/api/user", json={"user": user}, headers=self._headers)
        except httpx.RequestError as e:
            logger.error(f"Error calling user sync service: {str(e)}")
            raise
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
