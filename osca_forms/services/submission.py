"""Submission Assembler: FormState -> backend wire payload, with propose/commit.

The comma-joined checklist strings inside ``form_data`` are produced here and
nowhere else; hydration performs the inverse split.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from osca_forms.models.form_field import (
    MUNICIPAL_MARKER,
    PROVINCE_MARKER,
    FieldDescriptor,
    find_barangay_field,
)
from osca_forms.models.record import (
    DOCUMENT_FILE_FIELD,
    DOCUMENT_TYPE_FIELD,
    FIXED_NAME_COLUMNS,
    PHOTO_FILE_FIELD,
    UPLOAD_FIELDS,
    SystemDefaults,
)
from osca_forms.models.workflow import WorkflowProfile
from osca_forms.services.backend_client import BackendClient, error_message_from
from osca_forms.services.form_state import DERIVED_FIELDS, AttachedFile, FormState

logger = logging.getLogger(__name__)

CHECKLIST_SEPARATOR = ", "
REQUIRED_MESSAGE = "This field is required."
AGREEMENT_FIELD = "agreement"
AGREEMENT_MESSAGE = "Please certify that the information provided is true and correct."


class SchemaIntegrityError(Exception):
    """The schema has no barangay field, so no record can be persisted."""

    def __init__(self, message: str = "Barangay field is missing!"):
        super().__init__(message)
        self.message = message


@dataclass
class AssembledPayload:
    data: dict[str, str]
    files: dict[str, tuple] = field(default_factory=dict)

    @property
    def form_data(self) -> dict[str, Any]:
        return json.loads(self.data["form_data"])


@dataclass
class CommitResult:
    status: str  # submitted | failed | ignored
    message: Optional[str] = None
    response: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "submitted"


def join_checklist(descriptor: Optional[FieldDescriptor], selected) -> str:
    if descriptor is not None:
        return CHECKLIST_SEPARATOR.join(descriptor.order_selection(selected))
    return CHECKLIST_SEPARATOR.join(sorted(selected))


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (set, frozenset, list, tuple)):
        return len(value) == 0
    return False


def _coerce_barangay_id(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def validate_required(fields: list[FieldDescriptor], state: FormState,
                      barangay_disabled: bool = False) -> dict[str, str]:
    """Required-field check run before the confirmation opens.

    Mirrors browser constraint validation: read-only and disabled controls are
    exempt, and checklists carry no required constraint.
    """
    errors: dict[str, str] = {}
    for descriptor in fields:
        if not descriptor.required or descriptor.is_checkbox:
            continue
        if descriptor.field_name in DERIVED_FIELDS:
            continue
        if descriptor.is_barangay and barangay_disabled:
            continue
        if _is_missing(state.values.get(descriptor.field_name)):
            errors[descriptor.field_name] = REQUIRED_MESSAGE
    return errors


def assemble_payload(fields: list[FieldDescriptor], state: FormState,
                     defaults: Optional[SystemDefaults] = None,
                     refill_defaults: bool = False) -> AssembledPayload:
    barangay_field = find_barangay_field(fields)
    if barangay_field is None:
        raise SchemaIntegrityError()

    values = dict(state.values)
    names = {column: values.pop(column, None) for column in FIXED_NAME_COLUMNS}
    barangay_id = _coerce_barangay_id(values.pop(barangay_field.field_name, None))
    uploads = {name: values.pop(name, None) for name in UPLOAD_FIELDS}

    descriptors = {d.field_name: d for d in fields}
    rest: dict[str, Any] = {}
    for name, value in values.items():
        if isinstance(value, (set, frozenset, list, tuple)):
            rest[name] = join_checklist(descriptors.get(name), value)
        else:
            rest[name] = value

    if refill_defaults and defaults is not None:
        for descriptor in fields:
            if rest.get(descriptor.field_name):
                continue
            if descriptor.name_contains(MUNICIPAL_MARKER):
                rest[descriptor.field_name] = defaults.municipality
            elif descriptor.name_contains(PROVINCE_MARKER):
                rest[descriptor.field_name] = defaults.province

    data = {column: str(names[column] or "") for column in FIXED_NAME_COLUMNS}
    data["barangay_id"] = "" if barangay_id is None else str(barangay_id)
    data["form_data"] = json.dumps(rest)
    data["documentType"] = str(uploads[DOCUMENT_TYPE_FIELD] or "")

    files = {}
    for name in (DOCUMENT_FILE_FIELD, PHOTO_FILE_FIELD):
        upload = uploads[name]
        if isinstance(upload, AttachedFile):
            files[name] = upload.as_upload()

    return AssembledPayload(data=data, files=files)


class SubmissionAssembler:
    """Two-phase submit: propose opens a confirmation, commit sends it.

    At most one commit is outstanding per session; extra commits while one
    is in flight, or without an open confirmation, are ignored.
    """

    def __init__(self, client: BackendClient, profile: WorkflowProfile,
                 record_id: Optional[str] = None):
        self.client = client
        self.profile = profile
        self.record_id = record_id
        self.in_flight = False
        self.confirm_open = False

    def propose(self, fields: list[FieldDescriptor], state: FormState,
                barangay_disabled: bool = False, agreement: bool = False) -> dict[str, str]:
        errors = validate_required(fields, state, barangay_disabled)
        if self.profile.requires_agreement and not agreement:
            errors[AGREEMENT_FIELD] = AGREEMENT_MESSAGE
        self.confirm_open = not errors
        return errors

    def cancel_confirm(self) -> None:
        if not self.in_flight:
            self.confirm_open = False

    async def commit(self, fields: list[FieldDescriptor], state: FormState,
                     defaults: Optional[SystemDefaults] = None) -> CommitResult:
        if self.in_flight or not self.confirm_open:
            logger.info("Ignoring commit: no open confirmation or a commit is already in flight")
            return CommitResult(status="ignored")

        self.in_flight = True
        try:
            payload = assemble_payload(
                fields,
                state,
                defaults=defaults,
                refill_defaults=self.profile.refill_system_defaults,
            )
            path = self.profile.commit_url_path(self.record_id)
            logger.info(f"Submitting {self.profile.commit_method} {path}")
            response = await self.client.submit(
                self.profile.commit_method, path, payload.data, payload.files
            )
            return CommitResult(status="submitted", message=self.profile.success_message,
                                response=response)
        except SchemaIntegrityError as e:
            logger.error(f"Schema integrity fault: {e.message}")
            return CommitResult(status="failed", message=e.message)
        except Exception as e:
            logger.error(f"Submission failed: {e}", exc_info=True)
            return CommitResult(status="failed",
                                message=error_message_from(e) or self.profile.failure_message)
        finally:
            self.in_flight = False
            self.confirm_open = False
