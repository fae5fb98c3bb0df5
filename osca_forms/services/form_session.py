"""FormSession: one run of the form engine for a single workflow.

A session is the unit the HTTP layer talks to: it fetches the schema and
reference data concurrently, hydrates the form state with the workflow's
strategy, routes interaction mutations, renders the view and runs the
propose/commit protocol. After ``teardown`` any late async result is ignored.
"""

import asyncio
import logging
import time
import uuid
from datetime import date
from enum import Enum
from typing import Callable, Optional

from osca_forms.models.form_field import FieldDescriptor, GroupDescriptor
from osca_forms.models.record import PersistedRecord
from osca_forms.models.view import FormView
from osca_forms.models.workflow import HydrationKind, Workflow, get_profile
from osca_forms.services.backend_client import BackendClient
from osca_forms.services.field_renderer import BarangayContext, render_groups, render_uploads
from osca_forms.services.form_state import AttachedFile, FormState, FormStateManager, PreviewRegistry
from osca_forms.services.hydration import NotRegistered, get_strategy
from osca_forms.services.reference_data import ReferenceDataResolver
from osca_forms.services.submission import CommitResult, SubmissionAssembler

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    NOT_REGISTERED = "not_registered"
    ERROR = "error"
    SUBMITTED = "submitted"


class SessionNotReady(Exception):
    def __init__(self, status: SessionStatus):
        super().__init__(f"Form session is {status.value}")
        self.status = status


class FormSession:
    def __init__(self, workflow: Workflow, record_id: Optional[str] = None,
                 client: Optional[BackendClient] = None, session_id: Optional[str] = None,
                 clock: Callable[[], date] = date.today):
        self.workflow = workflow
        self.profile = get_profile(workflow)
        if self.profile.requires_record and not record_id:
            raise ValueError(f"Workflow {workflow.value} needs a record id")

        self.session_id = session_id or uuid.uuid4().hex
        self.record_id = record_id
        self.client = client or BackendClient()
        self.clock = clock
        self.resolver = ReferenceDataResolver(self.client)
        self.previews = PreviewRegistry(url_prefix=f"/sessions/{self.session_id}/previews")
        self.manager = FormStateManager([], previews=self.previews, clock=clock)
        self.assembler = SubmissionAssembler(self.client, self.profile, record_id)

        self.fields: list[FieldDescriptor] = []
        self.groups: list[GroupDescriptor] = []
        self.record: Optional[PersistedRecord] = None
        self.existing_document_url: Optional[str] = None
        self.existing_photo_url: Optional[str] = None

        self.status = SessionStatus.LOADING
        self.loading = False
        self.mounted = True
        self.form_error: Optional[str] = None
        self.field_errors: dict[str, str] = {}
        self.success_message: Optional[str] = None
        self.created_at = time.time()
        self.touched_at = self.created_at

    def touch(self) -> None:
        self.touched_at = time.time()

    async def start(self) -> SessionStatus:
        """Fetch schema, defaults, barangays (and the record) concurrently, then hydrate."""
        self.loading = True
        self.status = SessionStatus.LOADING
        core = [
            self.client.get_fields(self.profile.fields_path),
            self.client.get_groups(),
            self.resolver.load_defaults(),
        ]
        if self.profile.requires_record:
            core.append(self.client.get_record(self.record_id))

        try:
            _, fields, groups, _, *rest = await asyncio.gather(
                self.resolver.load_barangays(), *core
            )
        except Exception as e:
            if self.mounted:
                logger.error(f"Failed to load form for session {self.session_id}: {e}", exc_info=True)
                self.status = SessionStatus.ERROR
                self.form_error = self.profile.load_failure_message
                self.loading = False
            return self.status

        if not self.mounted:
            logger.debug(f"Session {self.session_id} torn down before load finished")
            return self.status

        self.loading = False
        self.fields = fields
        self.groups = groups
        self.record = rest[0] if rest else None

        if self.profile.hydration == HydrationKind.EDIT and self.record is None:
            logger.warning(f"Record {self.record_id} not found for update")
            self.status = SessionStatus.ERROR
            self.form_error = self.profile.load_failure_message
            return self.status

        try:
            self._hydrate()
        except ValueError as e:
            logger.error(f"Failed to hydrate session {self.session_id}: {e}", exc_info=True)
            self.status = SessionStatus.ERROR
            self.form_error = self.profile.load_failure_message
            return self.status
        logger.info(f"Session {self.session_id} ({self.workflow.value}) is {self.status.value}")
        return self.status

    def _hydrate(self) -> None:
        result = get_strategy(self.profile.hydration).hydrate(
            self.fields, self.resolver.defaults, self.record
        )
        if isinstance(result, NotRegistered):
            self.status = SessionStatus.NOT_REGISTERED
            return
        self.manager = FormStateManager(self.fields, previews=self.previews, clock=self.clock)
        self.manager.replace_state(result.state)
        self.existing_document_url = result.existing_document_url
        self.existing_photo_url = result.existing_photo_url
        self.status = SessionStatus.READY

    def _require_ready(self) -> None:
        if self.status != SessionStatus.READY:
            raise SessionNotReady(self.status)

    @property
    def state(self) -> FormState:
        return self.manager.state

    # Interaction mutations

    def set_value(self, field_name: str, value) -> None:
        self._require_ready()
        self.manager.set_value(field_name, value)
        self.field_errors.pop(field_name, None)

    def toggle_option(self, field_name: str, option: str, checked: bool) -> None:
        self._require_ready()
        self.manager.toggle_checklist_option(field_name, option, checked)

    def attach_file(self, field_name: str, file: AttachedFile) -> str:
        self._require_ready()
        return self.manager.set_file(field_name, file)

    def toggle_group(self, group_key: str) -> bool:
        self._require_ready()
        return self.manager.toggle_group_collapse(group_key)

    # Submission

    def propose(self, agreement: bool = False) -> bool:
        self._require_ready()
        self.form_error = None
        self.field_errors = self.assembler.propose(
            self.fields,
            self.state,
            barangay_disabled=not self.resolver.barangay_available,
            agreement=agreement,
        )
        return self.assembler.confirm_open

    def cancel_confirm(self) -> None:
        self.assembler.cancel_confirm()

    async def commit(self) -> CommitResult:
        self._require_ready()
        self.form_error = None
        result = await self.assembler.commit(self.fields, self.state, self.resolver.defaults)
        if result.status == "ignored" or not self.mounted:
            return result

        if not result.ok:
            self.form_error = result.message
            return result

        self.success_message = result.message
        if self.profile.reset_after_success:
            self._hydrate()
        else:
            self.manager.replace_state(FormState())
            self.status = SessionStatus.SUBMITTED
        return result

    def teardown(self) -> None:
        self.mounted = False
        self.previews.revoke_all()

    # Rendering

    def render(self) -> FormView:
        view = FormView(
            session_id=self.session_id,
            workflow=self.workflow.value,
            status=self.status.value,
            loading=self.loading,
            barangay_loading=self.resolver.barangay_loading,
            barangay_error=self.resolver.barangay_error,
            submitting=self.assembler.in_flight,
            confirm_open=self.assembler.confirm_open,
            requires_agreement=self.profile.requires_agreement,
            form_error=self.form_error,
            field_errors=dict(self.field_errors),
            success_message=self.success_message,
        )
        if self.status != SessionStatus.READY:
            return view

        view.empty = not self.fields
        barangays = BarangayContext(
            barangays=self.resolver.barangays,
            loading=self.resolver.barangay_loading,
            error=self.resolver.barangay_error,
        )
        view.groups = render_groups(self.fields, self.groups, self.state, barangays,
                                    self.field_errors)
        view.uploads = render_uploads(self.state, self.previews, self.existing_document_url,
                                      self.existing_photo_url, self.field_errors)
        return view
