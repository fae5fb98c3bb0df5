"""Hydration strategies: build the initial FormState for a workflow.

Blank, edit-existing and convert-unregistered all produce the same state
shape; the only place the persisted comma-joined checklist strings are turned
back into sets is here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from osca_forms.models.form_field import (
    MUNICIPAL_MARKER,
    PROVINCE_MARKER,
    FieldDescriptor,
)
from osca_forms.models.record import (
    DOCUMENT_TYPE_FIELD,
    FIXED_NAME_COLUMNS,
    PersistedRecord,
    SystemDefaults,
)
from osca_forms.models.workflow import HydrationKind
from osca_forms.services.form_state import FormState

logger = logging.getLogger(__name__)


@dataclass
class HydrationResult:
    state: FormState
    existing_document_url: Optional[str] = None
    existing_photo_url: Optional[str] = None


class NotRegistered:
    """Terminal outcome: the record to convert does not exist yet."""

    def __repr__(self) -> str:
        return "NotRegistered()"


NOT_REGISTERED = NotRegistered()


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == 0


def split_checklist(value: Any) -> set[str]:
    """Turn a persisted checklist value back into a set of options."""
    if value is None:
        return set()
    if isinstance(value, str):
        return {opt.strip() for opt in value.split(",") if opt.strip()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return {str(opt).strip() for opt in value if str(opt).strip()}
    return {str(value)}


def _system_default(descriptor: FieldDescriptor, defaults: SystemDefaults) -> Optional[str]:
    if descriptor.name_contains(MUNICIPAL_MARKER):
        return defaults.municipality or ""
    if descriptor.name_contains(PROVINCE_MARKER):
        return defaults.province or ""
    return None


def _initial_collapsed(fields: list[FieldDescriptor]) -> dict[str, bool]:
    collapsed: dict[str, bool] = {}
    for descriptor in fields:
        if descriptor.group is not None:
            collapsed.setdefault(descriptor.group, False)
    return collapsed


class HydrationStrategy:
    kind: HydrationKind

    def hydrate(self, fields: list[FieldDescriptor], defaults: SystemDefaults,
                record: Optional[PersistedRecord] = None) -> Union[HydrationResult, NotRegistered]:
        raise NotImplementedError


class BlankHydration(HydrationStrategy):
    kind = HydrationKind.BLANK

    def hydrate(self, fields, defaults, record=None):
        values: dict[str, Any] = {}
        for descriptor in fields:
            default = _system_default(descriptor, defaults)
            if default is not None:
                values[descriptor.field_name] = default
            elif descriptor.is_checkbox:
                values[descriptor.field_name] = set()
            else:
                values[descriptor.field_name] = ""
        values[DOCUMENT_TYPE_FIELD] = ""
        return HydrationResult(state=FormState(values=values, collapsed=_initial_collapsed(fields)))


class EditHydration(HydrationStrategy):
    kind = HydrationKind.EDIT

    @staticmethod
    def _barangay_value(descriptor: FieldDescriptor, form_data: dict[str, Any],
                        record: PersistedRecord) -> str:
        # Older records keep the id under a flat key or only in the column.
        for candidate in (form_data.get(descriptor.field_name),
                          form_data.get("barangay_id"),
                          record.barangay_id):
            if not _is_blank(candidate):
                return str(candidate)
        return ""

    def hydrate(self, fields, defaults, record=None):
        if record is None:
            raise ValueError("Edit hydration needs a persisted record")

        form_data = record.parsed_form_data()
        values: dict[str, Any] = {}
        for descriptor in fields:
            name = descriptor.field_name
            default = _system_default(descriptor, defaults)
            if default is not None:
                values[name] = default
            elif descriptor.is_barangay:
                values[name] = self._barangay_value(descriptor, form_data, record)
            elif name in FIXED_NAME_COLUMNS:
                values[name] = getattr(record, name) or ""
            elif descriptor.is_checkbox:
                values[name] = split_checklist(form_data.get(name))
            else:
                stored = form_data.get(name)
                values[name] = "" if stored is None else stored

        values[DOCUMENT_TYPE_FIELD] = record.document_type or ""
        logger.debug(f"Hydrated record {record.id} with {len(values)} values")
        return HydrationResult(
            state=FormState(values=values, collapsed=_initial_collapsed(fields)),
            existing_document_url=record.document_image,
            existing_photo_url=record.photo,
        )


class ConvertHydration(EditHydration):
    kind = HydrationKind.CONVERT

    def hydrate(self, fields, defaults, record=None):
        if record is None or not record.is_registered:
            return NOT_REGISTERED
        return super().hydrate(fields, defaults, record)


STRATEGIES: dict[HydrationKind, HydrationStrategy] = {
    HydrationKind.BLANK: BlankHydration(),
    HydrationKind.EDIT: EditHydration(),
    HydrationKind.CONVERT: ConvertHydration(),
}


def get_strategy(kind: HydrationKind) -> HydrationStrategy:
    return STRATEGIES[kind]
