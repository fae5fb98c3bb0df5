"""Field Renderer: descriptor + current value -> control view model.

Rendering never mutates anything; user edits come back through the
FormStateManager.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from osca_forms.models.form_field import FieldDescriptor, FieldType, GroupDescriptor
from osca_forms.models.record import (
    DOCUMENT_FILE_FIELD,
    DOCUMENT_TYPE_FIELD,
    DOCUMENT_TYPES,
    PHOTO_FILE_FIELD,
    Barangay,
)
from osca_forms.models.view import Control, ControlOption, RenderedGroup, UploadSection
from osca_forms.services.form_state import DERIVED_FIELDS, FormState, PreviewRegistry

LOADING_BARANGAYS_LABEL = "Loading barangays..."
DOCUMENT_TYPE_PLACEHOLDER = "-- Select a document --"


@dataclass
class BarangayContext:
    barangays: list[Barangay] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None

    @property
    def disabled(self) -> bool:
        return self.loading or self.error is not None


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _base(descriptor: FieldDescriptor, kind: str, **extra) -> Control:
    return Control(
        id=descriptor.id,
        field_name=descriptor.field_name,
        label=descriptor.label,
        kind=kind,
        required=descriptor.required,
        **extra,
    )


def _sentinel(label: str, selected: bool) -> ControlOption:
    return ControlOption(value="", label=label, selected=selected)


def _render_input(descriptor: FieldDescriptor, value: Any) -> Control:
    return _base(
        descriptor,
        "input",
        input_type=descriptor.type.value,
        value=_scalar(value),
        read_only=descriptor.field_name in DERIVED_FIELDS,
    )


def _render_textarea(descriptor: FieldDescriptor, value: Any) -> Control:
    return _base(descriptor, "textarea", value=_scalar(value))


def _render_select(descriptor: FieldDescriptor, value: Any) -> Control:
    current = _scalar(value)
    options = [_sentinel(f"Select {descriptor.label}", current == "")]
    options += [ControlOption(value=opt, label=opt, selected=opt == current)
                for opt in descriptor.option_list()]
    return _base(descriptor, "select", value=current, options=options)


def _render_radio(descriptor: FieldDescriptor, value: Any) -> Control:
    current = _scalar(value)
    options = [ControlOption(value=opt, label=opt, selected=opt == current)
               for opt in descriptor.option_list()]
    return _base(descriptor, "radio", value=current, options=options)


def _render_checkbox(descriptor: FieldDescriptor, value: Any) -> Control:
    selected = set(value or ())
    options = [ControlOption(value=opt, label=opt, selected=opt in selected)
               for opt in descriptor.option_list()]
    return _base(descriptor, "checkbox", value=descriptor.order_selection(selected),
                 options=options)


RENDERERS: dict[FieldType, Callable[[FieldDescriptor, Any], Control]] = {
    FieldType.TEXT: _render_input,
    FieldType.NUMBER: _render_input,
    FieldType.DATE: _render_input,
    FieldType.TEXTAREA: _render_textarea,
    FieldType.SELECT: _render_select,
    FieldType.RADIO: _render_radio,
    FieldType.CHECKBOX: _render_checkbox,
}


def render_barangay_select(descriptor: FieldDescriptor, value: Any,
                           context: BarangayContext) -> Control:
    current = _scalar(value)
    placeholder = LOADING_BARANGAYS_LABEL if context.loading else f"Select {descriptor.label}"
    options = [_sentinel(placeholder, current == "")]
    options += [ControlOption(value=str(b.id), label=b.name, selected=str(b.id) == current)
                for b in context.barangays]
    return _base(
        descriptor,
        "select",
        value=current,
        options=options,
        disabled=context.disabled,
        error=context.error,
    )


def render_field(descriptor: FieldDescriptor, value: Any,
                 barangays: Optional[BarangayContext] = None,
                 error: Optional[str] = None) -> Control:
    if descriptor.is_barangay:
        control = render_barangay_select(descriptor, value, barangays or BarangayContext())
    else:
        control = RENDERERS[descriptor.type](descriptor, value)
    if error:
        control.error = error
    return control


def group_fields(fields: list[FieldDescriptor]) -> dict[str, list[FieldDescriptor]]:
    grouped: dict[str, list[FieldDescriptor]] = {}
    for descriptor in fields:
        grouped.setdefault(descriptor.group, []).append(descriptor)
    for members in grouped.values():
        members.sort(key=lambda d: d.order)
    return grouped


def render_groups(fields: list[FieldDescriptor], groups: list[GroupDescriptor],
                  state: FormState, barangays: Optional[BarangayContext] = None,
                  field_errors: Optional[dict[str, str]] = None) -> list[RenderedGroup]:
    """Render every group that has at least one field, in group-list order."""
    grouped = group_fields(fields)
    field_errors = field_errors or {}
    rendered = []
    for group in groups:
        members = grouped.get(group.group_key)
        if not members:
            continue
        collapsed = state.collapsed.get(group.group_key, False)
        controls = []
        if not collapsed:
            controls = [
                render_field(d, state.values.get(d.field_name), barangays,
                             field_errors.get(d.field_name))
                for d in members
            ]
        rendered.append(RenderedGroup(
            group_key=group.group_key,
            label=group.group_label,
            collapsed=collapsed,
            controls=controls,
        ))
    return rendered


def render_uploads(state: FormState, previews: PreviewRegistry,
                   existing_document_url: Optional[str] = None,
                   existing_photo_url: Optional[str] = None,
                   field_errors: Optional[dict[str, str]] = None) -> UploadSection:
    current = _scalar(state.values.get(DOCUMENT_TYPE_FIELD))
    options = [_sentinel(DOCUMENT_TYPE_PLACEHOLDER, current == "")]
    options += [ControlOption(value=doc, label=doc, selected=doc == current)
                for doc in DOCUMENT_TYPES]
    document_type = Control(
        id=DOCUMENT_TYPE_FIELD,
        field_name=DOCUMENT_TYPE_FIELD,
        label="Type of Document",
        kind="select",
        value=current,
        options=options,
        error=(field_errors or {}).get(DOCUMENT_TYPE_FIELD),
    )
    return UploadSection(
        document_type=document_type,
        document_preview_url=previews.url_for_field(DOCUMENT_FILE_FIELD) or existing_document_url,
        photo_preview_url=previews.url_for_field(PHOTO_FILE_FIELD) or existing_photo_url,
    )
