from typing import Any, Optional

from pydantic import BaseModel, Field


class ControlOption(BaseModel):
    value: str
    label: str
    selected: bool = False


class Control(BaseModel):
    id: Any
    field_name: str
    label: str
    kind: str  # input | textarea | select | radio | checkbox
    input_type: Optional[str] = None
    value: Any = ""
    required: bool = False
    read_only: bool = False
    disabled: bool = False
    options: list[ControlOption] = Field(default_factory=list)
    error: Optional[str] = None


class RenderedGroup(BaseModel):
    group_key: str
    label: str
    collapsed: bool = False
    controls: list[Control] = Field(default_factory=list)


class UploadSection(BaseModel):
    document_type: Control
    document_preview_url: Optional[str] = None
    photo_preview_url: Optional[str] = None


class FormView(BaseModel):
    session_id: str
    workflow: str
    status: str
    groups: list[RenderedGroup] = Field(default_factory=list)
    uploads: Optional[UploadSection] = None
    empty: bool = False
    loading: bool = False
    barangay_loading: bool = False
    barangay_error: Optional[str] = None
    submitting: bool = False
    confirm_open: bool = False
    requires_agreement: bool = False
    form_error: Optional[str] = None
    field_errors: dict[str, str] = Field(default_factory=dict)
    success_message: Optional[str] = None
