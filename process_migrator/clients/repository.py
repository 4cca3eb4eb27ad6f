"""Artifact repository interface used by export and import.

Request bodies are plain dictionaries in wire format (camelCase keys);
results are parsed into payload models.
"""

from typing import Any, Protocol

from process_migrator.models.payload import (
    Behavior,
    Control,
    FormLayout,
    Group,
    Page,
    PickList,
    ProcessModel,
    ProcessRule,
    WorkItemField,
    WorkItemState,
    WorkItemTypeBehavior,
    WorkItemTypeFieldModel,
    WorkItemTypeModel,
)

Body = dict[str, Any]


class ArtifactRepository(Protocol):
    """Remote process artifacts of one account."""

    # Processes
    def list_processes(self) -> list[ProcessModel]: ...
    def get_process(self, process_id: str) -> ProcessModel: ...
    def create_process(self, body: Body) -> ProcessModel: ...
    def delete_process(self, process_id: str) -> None: ...

    # Fields
    def list_collection_fields(self) -> list[WorkItemField]: ...
    def list_process_fields(self, process_id: str) -> list[WorkItemField]: ...
    def create_field(self, body: Body, process_id: str) -> WorkItemField: ...

    # Work item types
    def list_work_item_types(self, process_id: str) -> list[WorkItemTypeModel]: ...
    def create_work_item_type(self, body: Body, process_id: str) -> WorkItemTypeModel: ...
    def get_work_item_type_fields(self, process_id: str, wit_ref_name: str) -> list[WorkItemTypeFieldModel]: ...
    def get_form_layout(self, process_id: str, wit_ref_name: str) -> FormLayout: ...
    def get_states(self, process_id: str, wit_ref_name: str) -> list[WorkItemState]: ...
    def get_rules(self, process_id: str, wit_ref_name: str) -> list[ProcessRule]: ...
    def get_work_item_type_behaviors(self, process_id: str, wit_ref_name: str) -> list[WorkItemTypeBehavior]: ...

    # Work item type scoped mutators
    def add_field_to_work_item_type(self, body: Body, process_id: str, wit_ref_name: str) -> WorkItemTypeFieldModel: ...
    def add_page(self, body: Body, process_id: str, wit_ref_name: str) -> Page: ...
    def edit_page(self, body: Body, process_id: str, wit_ref_name: str) -> Page: ...
    def add_group(
        self, body: Body, process_id: str, wit_ref_name: str, page_id: str, section_id: str
    ) -> Group: ...
    def edit_group(
        self, body: Body, process_id: str, wit_ref_name: str, page_id: str, section_id: str, group_id: str
    ) -> Group: ...
    def add_control(self, body: Body, process_id: str, wit_ref_name: str, group_id: str) -> Control: ...
    def edit_control(
        self, body: Body, process_id: str, wit_ref_name: str, group_id: str, control_id: str
    ) -> Control: ...
    def create_state(self, body: Body, process_id: str, wit_ref_name: str) -> WorkItemState: ...
    def update_state(self, body: Body, process_id: str, wit_ref_name: str, state_id: str) -> WorkItemState: ...
    def hide_state(self, process_id: str, wit_ref_name: str, state_id: str) -> WorkItemState: ...
    def delete_state(self, process_id: str, wit_ref_name: str, state_id: str) -> None: ...
    def add_rule(self, body: Body, process_id: str, wit_ref_name: str) -> ProcessRule: ...
    def add_behavior_to_work_item_type(
        self, body: Body, process_id: str, wit_ref_name: str
    ) -> WorkItemTypeBehavior: ...

    # Behaviors
    def list_behaviors(self, process_id: str) -> list[Behavior]: ...
    def create_behavior(self, body: Body, process_id: str) -> Behavior: ...
    def replace_behavior(self, body: Body, process_id: str, behavior_id: str) -> Behavior: ...

    # Picklists
    def get_picklist(self, picklist_id: str) -> PickList: ...
    def create_picklist(self, body: Body) -> PickList: ...
    def update_picklist(self, body: Body, picklist_id: str) -> PickList: ...
