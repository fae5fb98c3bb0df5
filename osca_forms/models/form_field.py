from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel


BARANGAY_MARKER = "barangay"
MUNICIPAL_MARKER = "municipal"
PROVINCE_MARKER = "province"


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"


class FieldDescriptor(BaseModel):
    """One configurable input slot as declared by the backend schema."""

    id: Union[int, str]
    field_name: str
    label: str = ""
    type: FieldType
    group: Optional[str] = None
    order: int = 0
    required: bool = False
    options: Optional[str] = None

    def option_list(self) -> list[str]:
        """Options in schema order; the backend separates them with commas."""
        if not self.options:
            return []
        return [opt.strip() for opt in self.options.split(",") if opt.strip()]

    def order_selection(self, selected) -> list[str]:
        """Selected options in schema order, unknown leftovers sorted at the end."""
        selected = set(selected or ())
        known = [opt for opt in self.option_list() if opt in selected]
        return known + sorted(selected.difference(known))

    @property
    def is_checkbox(self) -> bool:
        return self.type == FieldType.CHECKBOX

    def name_contains(self, marker: str) -> bool:
        return marker in self.field_name.lower()

    @property
    def is_barangay(self) -> bool:
        return self.name_contains(BARANGAY_MARKER)


class GroupDescriptor(BaseModel):
    group_key: str
    group_label: str = ""


def find_barangay_field(fields: list[FieldDescriptor]) -> Optional[FieldDescriptor]:
    return next((f for f in fields if f.is_barangay), None)
