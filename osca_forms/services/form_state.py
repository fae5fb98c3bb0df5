"""Form State Manager: the live edit buffer of one form session.

Every mutation is synchronous and total: it either produces a valid next
state or raises ``ValueError`` before touching anything.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional, Union

from osca_forms.models.form_field import FieldDescriptor, FieldType
from osca_forms.models.record import DOCUMENT_FILE_FIELD, DOCUMENT_TYPE_FIELD, PHOTO_FILE_FIELD

logger = logging.getLogger(__name__)

FILE_FIELDS = (DOCUMENT_FILE_FIELD, PHOTO_FILE_FIELD)


@dataclass
class AttachedFile:
    filename: str
    content_type: str
    content: bytes

    def as_upload(self) -> tuple[str, bytes, str]:
        return (self.filename, self.content, self.content_type)


@dataclass
class FormState:
    values: dict[str, Any] = field(default_factory=dict)
    collapsed: dict[str, bool] = field(default_factory=dict)


def derive_age(birthdate: Union[str, date, None], today: date) -> Union[int, str]:
    """Whole years between birthdate and today; "" when unknown or in the future."""
    if not birthdate:
        return ""
    if isinstance(birthdate, str):
        try:
            birthdate = date.fromisoformat(birthdate)
        except ValueError:
            return ""
    age = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        age -= 1
    return age if age >= 0 else ""


@dataclass(frozen=True)
class Derivation:
    source: str
    target: str
    compute: Callable[[Any, date], Any]


AGE_FROM_BIRTHDATE = Derivation(source="birthdate", target="age", compute=derive_age)
DERIVATIONS = (AGE_FROM_BIRTHDATE,)
DERIVED_FIELDS = frozenset(d.target for d in DERIVATIONS)


class PreviewRegistry:
    """Owns the ephemeral preview resources created for uploaded files.

    Each file field holds at most one live preview; replacing the file
    revokes the old one, and ``revoke_all`` releases everything on teardown.
    """

    def __init__(self, url_prefix: str = ""):
        self.url_prefix = url_prefix.rstrip("/")
        self._previews: dict[str, AttachedFile] = {}
        self._by_field: dict[str, str] = {}

    def replace(self, field_name: str, file: AttachedFile) -> str:
        previous = self._by_field.pop(field_name, None)
        if previous:
            self.revoke(previous)
        token = secrets.token_urlsafe(12)
        self._previews[token] = file
        self._by_field[field_name] = token
        return self.url_for(token)

    def url_for(self, token: str) -> str:
        return f"{self.url_prefix}/{token}"

    def url_for_field(self, field_name: str) -> Optional[str]:
        token = self._by_field.get(field_name)
        return self.url_for(token) if token else None

    def get(self, token: str) -> Optional[AttachedFile]:
        return self._previews.get(token)

    def revoke(self, token: str) -> None:
        self._previews.pop(token, None)
        for name, owned in list(self._by_field.items()):
            if owned == token:
                del self._by_field[name]

    def revoke_all(self) -> None:
        if self._previews:
            logger.debug(f"Revoking {len(self._previews)} preview(s)")
        self._previews.clear()
        self._by_field.clear()

    @property
    def active_count(self) -> int:
        return len(self._previews)


class FormStateManager:
    def __init__(self, fields: list[FieldDescriptor], state: Optional[FormState] = None,
                 previews: Optional[PreviewRegistry] = None,
                 clock: Callable[[], date] = date.today):
        self.fields = {f.field_name: f for f in fields}
        self.state = state or FormState()
        self.previews = previews or PreviewRegistry()
        self.clock = clock

    @property
    def values(self) -> dict[str, Any]:
        return self.state.values

    def replace_state(self, state: FormState) -> None:
        """Install a freshly hydrated state, dropping any previews of the old one."""
        self.previews.revoke_all()
        self.state = state

    def _descriptor(self, field_name: str) -> Optional[FieldDescriptor]:
        descriptor = self.fields.get(field_name)
        if descriptor is None and field_name != DOCUMENT_TYPE_FIELD:
            raise ValueError(f"Unknown field: {field_name}")
        return descriptor

    def set_scalar(self, field_name: str, value: Any) -> None:
        if field_name in DERIVED_FIELDS:
            raise ValueError(f"{field_name} is derived and cannot be edited directly")
        descriptor = self._descriptor(field_name)
        if descriptor is not None and descriptor.is_checkbox:
            raise ValueError(f"{field_name} is a checklist; toggle its options instead")
        self.state.values[field_name] = "" if value is None else str(value)

    def set_date(self, field_name: str, value: Any) -> None:
        self.set_scalar(field_name, value)
        for derivation in DERIVATIONS:
            if derivation.source == field_name:
                self.state.values[derivation.target] = derivation.compute(
                    self.state.values[field_name], self.clock()
                )

    def set_value(self, field_name: str, value: Any) -> None:
        """Route a single-value edit to the mutation its field type calls for."""
        descriptor = self.fields.get(field_name)
        if descriptor is not None and descriptor.type == FieldType.DATE:
            self.set_date(field_name, value)
        else:
            self.set_scalar(field_name, value)

    def toggle_checklist_option(self, field_name: str, option: str, checked: bool) -> None:
        descriptor = self._descriptor(field_name)
        if descriptor is None or not descriptor.is_checkbox:
            raise ValueError(f"{field_name} is not a checklist field")
        if checked and option not in descriptor.option_list():
            raise ValueError(f"{option!r} is not an option of {field_name}")
        selected = set(self.state.values.get(field_name) or ())
        if checked:
            selected.add(option)
        else:
            selected.discard(option)
        self.state.values[field_name] = selected

    def set_file(self, field_name: str, file: AttachedFile) -> str:
        if field_name not in FILE_FIELDS:
            raise ValueError(f"{field_name} is not an upload slot")
        self.state.values[field_name] = file
        return self.previews.replace(field_name, file)

    def toggle_group_collapse(self, group_key: str) -> bool:
        collapsed = not self.state.collapsed.get(group_key, False)
        self.state.collapsed[group_key] = collapsed
        return collapsed
