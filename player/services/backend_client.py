"""HTTP client for the drill backend."""
from __future__ import annotations

import logging

import requests

from player.config import API_BASE_URL, REQUEST_TIMEOUT_SECONDS

log = logging.getLogger(__name__)


class BackendClient:
    """Read-only access to levels, weeks and question sets."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Content-Type": "application/json", "Accept": "application/json"}
        )

    def _get(self, path: str) -> object:
        url = f"{self.base_url}{path}"
        log.debug("GET %s", url)
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get_questions(self, level: str, week: str, set_id: str) -> dict[str, object]:
        """Fetch one question set with its questions.

        Returns the ``data`` envelope: ``{"question_set": ..., "questions": [...]}``.
        """
        payload = self._get(
            f"/levels/{level}/weeks/{week}/question-sets/{set_id}/questions"
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise ValueError("Response is missing the data envelope")
        return payload["data"]

    def close(self) -> None:
        self.session.close()
