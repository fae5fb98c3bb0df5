import logging
from typing import Optional

from osca_forms.models.record import Barangay, SystemDefaults
from osca_forms.services.backend_client import BackendClient

logger = logging.getLogger(__name__)

BARANGAY_LOAD_ERROR = "Failed to load barangays. Please refresh the page."


class ReferenceDataResolver:
    """Cross-referenced option sets and system-wide pre-fill values.

    A barangay directory failure only degrades the barangay control, so it is
    tracked with its own flag and never raised. System defaults are part of
    the form load and do raise.
    """

    def __init__(self, client: BackendClient):
        self.client = client
        self.barangays: list[Barangay] = []
        self.barangay_loading = False
        self.barangay_error: Optional[str] = None
        self.defaults = SystemDefaults()

    async def load_barangays(self) -> list[Barangay]:
        self.barangay_loading = True
        self.barangay_error = None
        try:
            self.barangays = await self.client.list_barangays()
        except Exception as e:
            logger.warning(f"Failed to fetch barangays: {e}")
            self.barangays = []
            self.barangay_error = BARANGAY_LOAD_ERROR
        finally:
            self.barangay_loading = False
        return self.barangays

    async def load_defaults(self) -> SystemDefaults:
        self.defaults = await self.client.get_system_defaults()
        return self.defaults

    @property
    def barangay_available(self) -> bool:
        return not self.barangay_loading and self.barangay_error is None
