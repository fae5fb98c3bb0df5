import httpx
import logging
from typing import Any, Optional

from osca_forms.config import settings
from osca_forms.models.form_field import FieldDescriptor, GroupDescriptor
from osca_forms.models.record import Barangay, PersistedRecord, SystemDefaults

logger = logging.getLogger(__name__)

GROUPS_PATH = "/api/form-fields/group"
SETTINGS_PATH = "/api/settings/"
BARANGAYS_PATH = "/api/barangays/all"
RECORD_PATH = "/api/senior-citizens/get/{id}"


class BackendClient:
    """Thin async client for the OSCA REST backend.

    The caller's session cookie is forwarded untouched; this client never
    inspects it.
    """

    def __init__(self, base_url: str = None, cookies: Optional[dict[str, str]] = None,
                 timeout: float = None):
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.cookies = dict(cookies or {})
        self.timeout = timeout or settings.request_timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, cookies=self.cookies)

    async def get_json(self, path: str) -> Any:
        """GET a backend path and decode the JSON body (None when empty)."""
        async with self._client() as client:
            response = await client.get(f"{self.base_url}{path}")
            response.raise_for_status()
            if not response.content:
                return None
            return response.json()

    async def get_fields(self, path: str) -> list[FieldDescriptor]:
        data = await self.get_json(path) or []
        return [FieldDescriptor.model_validate(item) for item in data]

    async def get_groups(self) -> list[GroupDescriptor]:
        data = await self.get_json(GROUPS_PATH) or []
        return [GroupDescriptor.model_validate(item) for item in data]

    async def get_system_defaults(self) -> SystemDefaults:
        data = await self.get_json(SETTINGS_PATH) or {}
        return SystemDefaults(
            municipality=data.get("municipality") or "",
            province=data.get("province") or "",
        )

    async def list_barangays(self) -> list[Barangay]:
        data = await self.get_json(BARANGAYS_PATH) or []
        return [Barangay.model_validate(item) for item in data]

    async def get_record(self, record_id: str) -> Optional[PersistedRecord]:
        """Fetch a citizen record; a 404 or an empty body means "not registered yet"."""
        try:
            data = await self.get_json(RECORD_PATH.format(id=record_id))
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info(f"Record {record_id} not found on backend")
                return None
            raise
        if not data:
            return None
        return PersistedRecord.model_validate(data)

    async def submit(self, method: str, path: str, data: dict[str, str],
                     files: Optional[dict[str, tuple]] = None) -> Any:
        """Send a multipart create/update request and return the decoded body.

        Plain values go out as filename-less parts so the body is always
        multipart, even when no file is attached.
        """
        parts = [(name, (None, value)) for name, value in data.items()]
        parts.extend((files or {}).items())
        async with self._client() as client:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                files=parts,
            )
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()

    async def is_available(self) -> bool:
        """Check if the backend is reachable."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}{SETTINGS_PATH}")
                return response.status_code == 200
        except Exception:
            return False


def error_message_from(exc: Exception) -> Optional[str]:
    """Extract the backend's `{message}` from a failed request, if any."""
    if not isinstance(exc, httpx.HTTPStatusError):
        return None
    try:
        body = exc.response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None
