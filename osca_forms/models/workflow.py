from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Workflow(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    CONVERT = "convert"
    PUBLIC_REGISTER = "public_register"


class HydrationKind(str, Enum):
    BLANK = "blank"
    EDIT = "edit"
    CONVERT = "convert"


@dataclass(frozen=True)
class WorkflowProfile:
    fields_path: str
    hydration: HydrationKind
    commit_method: str
    commit_path: str
    success_message: str
    failure_message: str
    load_failure_message: str = "Failed to load form. Please refresh the page."
    requires_record: bool = False
    requires_agreement: bool = False
    refill_system_defaults: bool = False
    reset_after_success: bool = False

    def commit_url_path(self, record_id: Optional[str]) -> str:
        if self.requires_record:
            return self.commit_path.format(id=record_id)
        return self.commit_path


PROFILES: dict[Workflow, WorkflowProfile] = {
    Workflow.CREATE: WorkflowProfile(
        fields_path="/api/form-fields/",
        hydration=HydrationKind.BLANK,
        commit_method="POST",
        commit_path="/api/senior-citizens/create",
        success_message="New senior citizen added!",
        failure_message="Failed to submit form.",
    ),
    Workflow.UPDATE: WorkflowProfile(
        fields_path="/api/form-fields/",
        hydration=HydrationKind.EDIT,
        commit_method="PUT",
        commit_path="/api/senior-citizens/update/{id}",
        success_message="Senior citizen updated successfully.",
        failure_message="Failed to update senior citizen.",
        load_failure_message="Failed to load senior citizen or form data.",
        requires_record=True,
    ),
    Workflow.CONVERT: WorkflowProfile(
        fields_path="/api/form-fields/",
        hydration=HydrationKind.CONVERT,
        commit_method="PUT",
        commit_path="/api/senior-citizens/register/{id}",
        success_message="Senior citizen registered successfully.",
        failure_message="Failed to register senior citizen.",
        load_failure_message="Failed to load senior citizen or form data.",
        requires_record=True,
    ),
    Workflow.PUBLIC_REGISTER: WorkflowProfile(
        fields_path="/api/form-fields/register-field",
        hydration=HydrationKind.BLANK,
        commit_method="POST",
        commit_path="/api/senior-citizens/apply",
        success_message="Senior citizen has been registered successfully!",
        failure_message="Failed to submit form.",
        requires_agreement=True,
        refill_system_defaults=True,
        reset_after_success=True,
    ),
}


def get_profile(workflow: Workflow) -> WorkflowProfile:
    return PROFILES[workflow]
