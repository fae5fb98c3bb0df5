import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


FIXED_NAME_COLUMNS = ("firstName", "middleName", "lastName", "suffix")

DOCUMENT_TYPE_FIELD = "documentType"
DOCUMENT_FILE_FIELD = "documentFile"
PHOTO_FILE_FIELD = "photoFile"
UPLOAD_FIELDS = (DOCUMENT_TYPE_FIELD, DOCUMENT_FILE_FIELD, PHOTO_FILE_FIELD)

# Valid proofs of age accepted by the OSCA office
DOCUMENT_TYPES = [
    "Certificate of Live Birth",
    "Social Security System (SSS) ID",
    "Government Service Insurance System (GSIS) ID",
    "Driver's License",
    "Philippine Passport",
    "COMELEC ID / Voter's Certification",
    "Baptismal Certificate",
    "Marriage Certificate",
    "Unified Multi-Purpose ID (UMID)",
]


class Barangay(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str]
    name: str = Field(default="", alias="barangay_name")


class SystemDefaults(BaseModel):
    """Session-scoped snapshot of the system-wide settings used for pre-fill."""

    model_config = ConfigDict(frozen=True)

    municipality: str = ""
    province: str = ""


class PersistedRecord(BaseModel):
    id: Optional[Union[int, str]] = None
    firstName: Optional[str] = None
    middleName: Optional[str] = None
    lastName: Optional[str] = None
    suffix: Optional[str] = None
    barangay_id: Optional[Union[int, str]] = None
    form_data: Optional[Union[str, dict[str, Any]]] = None
    document_type: Optional[str] = None
    document_image: Optional[str] = None
    photo: Optional[str] = None

    @property
    def is_registered(self) -> bool:
        return self.id not in (None, "")

    def parsed_form_data(self) -> dict[str, Any]:
        """form_data arrives either as a JSON string or an already-parsed object."""
        raw = self.form_data
        if not raw:
            return {}
        if isinstance(raw, str):
            parsed = json.loads(raw)
            return dict(parsed) if isinstance(parsed, dict) else {}
        return dict(raw)
