"""Shared fixtures for OSCA form engine tests."""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from osca_forms.models.form_field import FieldDescriptor, GroupDescriptor
from osca_forms.models.record import Barangay, PersistedRecord, SystemDefaults
from osca_forms.services.backend_client import BackendClient


# ---------------------------------------------------------------------------
# Schema fixtures
# ---------------------------------------------------------------------------

FIXED_TODAY = date(2024, 3, 14)

SAMPLE_FIELDS = [
    {"id": 1, "field_name": "firstName", "label": "First Name", "type": "text",
     "group": "personal", "order": 1, "required": 1},
    {"id": 2, "field_name": "middleName", "label": "Middle Name", "type": "text",
     "group": "personal", "order": 2, "required": 0},
    {"id": 3, "field_name": "lastName", "label": "Last Name", "type": "text",
     "group": "personal", "order": 3, "required": 1},
    {"id": 4, "field_name": "suffix", "label": "Suffix", "type": "text",
     "group": "personal", "order": 4, "required": 0},
    {"id": 5, "field_name": "birthdate", "label": "Birthdate", "type": "date",
     "group": "personal", "order": 5, "required": 1},
    {"id": 6, "field_name": "age", "label": "Age", "type": "number",
     "group": "personal", "order": 6, "required": 1},
    {"id": 7, "field_name": "gender", "label": "Gender", "type": "radio",
     "group": "personal", "order": 7, "required": 1, "options": "Male, Female"},
    {"id": 8, "field_name": "barangay", "label": "Barangay", "type": "select",
     "group": "address", "order": 1, "required": 1},
    {"id": 9, "field_name": "municipality", "label": "Municipality", "type": "text",
     "group": "address", "order": 2, "required": 0},
    {"id": 10, "field_name": "province", "label": "Province", "type": "text",
     "group": "address", "order": 3, "required": 0},
    {"id": 11, "field_name": "civilStatus", "label": "Civil Status", "type": "select",
     "group": "personal", "order": 8, "required": 0, "options": "Single,Married , Widowed"},
    {"id": 12, "field_name": "healthConditions", "label": "Health Conditions", "type": "checkbox",
     "group": "health", "order": 1, "required": 1, "options": "Diabetic, Hypertensive, Asthmatic"},
    {"id": 13, "field_name": "remarks", "label": "Remarks", "type": "textarea",
     "group": "health", "order": 2, "required": 0},
]

SAMPLE_GROUPS = [
    {"group_key": "personal", "group_label": "Personal Information"},
    {"group_key": "address", "group_label": "Address"},
    {"group_key": "health", "group_label": "Health"},
    {"group_key": "family", "group_label": "Family Composition"},
]

SAMPLE_BARANGAYS = [
    {"id": 3, "barangay_name": "Poblacion"},
    {"id": 5, "barangay_name": "San Isidro"},
    {"id": 9, "barangay_name": "Santa Cruz"},
]

SAMPLE_DEFAULTS = {"municipality": "Lopez Jaena", "province": "Misamis Occidental"}


def make_fields(raw: list[dict] = None) -> list[FieldDescriptor]:
    return [FieldDescriptor.model_validate(item) for item in (raw or SAMPLE_FIELDS)]


def make_groups(raw: list[dict] = None) -> list[GroupDescriptor]:
    return [GroupDescriptor.model_validate(item) for item in (raw or SAMPLE_GROUPS)]


def make_field(**overrides) -> FieldDescriptor:
    """Create a FieldDescriptor with sensible defaults."""
    defaults = {
        "id": 100,
        "field_name": "nickname",
        "label": "Nickname",
        "type": "text",
        "group": "personal",
        "order": 0,
        "required": False,
        "options": None,
    }
    defaults.update(overrides)
    return FieldDescriptor.model_validate(defaults)


def make_record(**overrides) -> PersistedRecord:
    """Create a PersistedRecord with sensible defaults."""
    defaults = {
        "id": 42,
        "firstName": "Juan",
        "middleName": "Santos",
        "lastName": "Dela Cruz",
        "suffix": "",
        "barangay_id": 9,
        "form_data": '{"barangay_id": 5, "birthdate": "1950-06-01", "age": 73, '
                     '"gender": "Male", "healthConditions": "Diabetic, Hypertensive", '
                     '"remarks": "none"}',
        "document_type": "Philippine Passport",
        "document_image": "https://files.example.com/doc.png",
        "photo": "https://files.example.com/photo.png",
    }
    defaults.update(overrides)
    return PersistedRecord.model_validate(defaults)


def make_defaults() -> SystemDefaults:
    return SystemDefaults(**SAMPLE_DEFAULTS)


def make_barangays() -> list[Barangay]:
    return [Barangay.model_validate(item) for item in SAMPLE_BARANGAYS]


# ---------------------------------------------------------------------------
# Mock backend client
# ---------------------------------------------------------------------------

def make_mock_backend(record: PersistedRecord = None, fields: list[FieldDescriptor] = None) -> AsyncMock:
    """Return an AsyncMock that behaves like a BackendClient with the sample schema."""
    backend = AsyncMock(spec=BackendClient)
    backend.get_fields = AsyncMock(return_value=fields if fields is not None else make_fields())
    backend.get_groups = AsyncMock(return_value=make_groups())
    backend.get_system_defaults = AsyncMock(return_value=make_defaults())
    backend.list_barangays = AsyncMock(return_value=make_barangays())
    backend.get_record = AsyncMock(return_value=record)
    backend.submit = AsyncMock(return_value={"message": "ok"})
    backend.is_available = AsyncMock(return_value=True)
    return backend


@pytest.fixture
def fields():
    return make_fields()


@pytest.fixture
def groups():
    return make_groups()


@pytest.fixture
def defaults():
    return make_defaults()


@pytest.fixture
def mock_backend():
    return make_mock_backend()
