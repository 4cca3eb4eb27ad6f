"""In-memory account implementing the artifact repository for tests.

Keeps just enough server-side behavior to exercise export and import:
generated ids, unique process and behavior names, default states for new
work item types and inherited behaviors for new processes. Every call is
recorded in ``calls``; failures can be queued per method in ``failures``.
"""

import threading
from collections import defaultdict
from typing import Any

from process_migrator.clients.exceptions import ApiError, ResourceNotFoundError
from process_migrator.models.payload import (
    Behavior,
    Control,
    FormLayout,
    Group,
    Page,
    PickList,
    ProcessModel,
    ProcessPayload,
    ProcessRule,
    WorkItemField,
    WorkItemState,
    WorkItemTypeBehavior,
    WorkItemTypeFieldModel,
    WorkItemTypeModel,
)

PORTFOLIO_BEHAVIOR = "System.PortfolioBacklogBehavior"


def default_behaviors() -> list[Behavior]:
    """Behaviors every new process inherits from its parent."""
    return [
        Behavior(id=PORTFOLIO_BEHAVIOR, name="Portfolio", abstract=True, customization_type="system"),
        Behavior(
            id="Microsoft.VSTS.Agile.EpicBacklogBehavior",
            name="Epics",
            color="ff7b00",
            inherits={"id": PORTFOLIO_BEHAVIOR},
            customization_type="system",
        ),
        Behavior(
            id="Microsoft.VSTS.Agile.FeatureBacklogBehavior",
            name="Features",
            color="773b93",
            inherits={"id": PORTFOLIO_BEHAVIOR},
            customization_type="system",
        ),
    ]


def default_states() -> list[WorkItemState]:
    """States a newly created work item type starts with."""
    return [
        WorkItemState(name="New", color="b2b2b2", state_category="Proposed", customization_type="system"),
        WorkItemState(name="Active", color="007acc", state_category="InProgress", customization_type="system"),
        WorkItemState(name="Closed", color="339933", state_category="Completed", customization_type="system"),
    ]


def default_collection_fields() -> list[WorkItemField]:
    return [
        WorkItemField(reference_name="System.Title", name="Title", type="string"),
        WorkItemField(reference_name="System.Description", name="Description", type="html"),
        WorkItemField(reference_name="System.State", name="State", type="string"),
        WorkItemField(reference_name="System.AssignedTo", name="Assigned To", type="identity", is_identity=True),
    ]


class FakeRepository:
    """One Azure DevOps account held in memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._next_id = 0

        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, list[BaseException | None]] = defaultdict(list)
        self.rename_supported = True

        self.processes: dict[str, ProcessModel] = {}
        self.collection_fields: list[WorkItemField] = default_collection_fields()
        self.process_fields: dict[str, list[WorkItemField]] = defaultdict(list)
        self.work_item_types: dict[str, list[WorkItemTypeModel]] = defaultdict(list)
        self.type_fields: dict[tuple[str, str], list[WorkItemTypeFieldModel]] = defaultdict(list)
        self.layouts: dict[tuple[str, str], FormLayout] = {}
        self.states: dict[tuple[str, str], list[WorkItemState]] = {}
        self.rules: dict[tuple[str, str], list[ProcessRule]] = defaultdict(list)
        self.type_behaviors: dict[tuple[str, str], list[WorkItemTypeBehavior]] = defaultdict(list)
        self.behaviors: dict[str, list[Behavior]] = defaultdict(list)
        self.picklists: dict[str, PickList] = {}

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def _enter(self, name: str, *args: Any) -> None:
        with self._lock:
            self.calls.append((name, args))
            queued = self.failures.get(name)
            error = queued.pop(0) if queued else None
        if error is not None:
            raise error

    def _new_id(self, prefix: str) -> str:
        with self._lock:
            self._next_id += 1
            return f"{prefix}-{self._next_id}"

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def add_process(self, name: str, process_class: str = "derived", **kwargs: Any) -> ProcessModel:
        process = ProcessModel(
            name=name,
            type_id=kwargs.pop("type_id", self._new_id("process")),
            properties={"class": process_class, "parentProcessTypeId": kwargs.pop("parent", "agile-id")},
            **kwargs,
        )
        self.processes[process.type_id] = process
        self.behaviors[process.type_id] = default_behaviors()
        return process

    def add_collection_field(self, **kwargs: Any) -> WorkItemField:
        field = WorkItemField(**kwargs)
        self.collection_fields.append(field)
        return field

    def add_picklist(self, values: list[str], is_suggested: bool = False) -> PickList:
        picklist = PickList(
            id=self._new_id("picklist"),
            name=f"picklist_{len(self.picklists)}",
            type="String",
            is_suggested=is_suggested,
            items=values,
        )
        self.picklists[picklist.id] = picklist
        return picklist

    def behavior_names(self, process_id: str) -> dict[str, str | None]:
        return {behavior.behavior_id: behavior.name for behavior in self.behaviors[process_id]}

    def process_by_name(self, name: str) -> ProcessModel:
        return next(p for p in self.processes.values() if p.name == name)

    # ------------------------------------------------------------------
    # Processes
    # ------------------------------------------------------------------

    def list_processes(self) -> list[ProcessModel]:
        self._enter("list_processes")
        return [process.model_copy(deep=True) for process in self.processes.values()]

    def get_process(self, process_id: str) -> ProcessModel:
        self._enter("get_process", process_id)
        if process_id not in self.processes:
            raise ResourceNotFoundError(f"HTTP Error 404: process {process_id}")
        return self.processes[process_id].model_copy(deep=True)

    def create_process(self, body: dict[str, Any]) -> ProcessModel:
        self._enter("create_process", body)
        if any(p.name.lower() == body["name"].lower() for p in self.processes.values()):
            raise ApiError("HTTP Error 400: process name already in use", status_code=400)
        process = self.add_process(
            body["name"],
            parent=body["parentProcessTypeId"],
            reference_name=body.get("referenceName"),
            description=body.get("description"),
        )
        return process.model_copy(deep=True)

    def delete_process(self, process_id: str) -> None:
        self._enter("delete_process", process_id)
        self.processes.pop(process_id, None)

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def list_collection_fields(self) -> list[WorkItemField]:
        self._enter("list_collection_fields")
        return [field.model_copy(deep=True) for field in self.collection_fields]

    def list_process_fields(self, process_id: str) -> list[WorkItemField]:
        self._enter("list_process_fields", process_id)
        return list(self.process_fields[process_id])

    def create_field(self, body: dict[str, Any], process_id: str) -> WorkItemField:
        self._enter("create_field", body, process_id)
        picklist = body.get("pickList")
        field = WorkItemField(
            reference_name=body["id"],
            name=body.get("name"),
            type=body.get("type"),
            description=body.get("description"),
            is_identity=body.get("type") == "identity",
            is_picklist=picklist is not None,
            picklist_id=picklist["id"] if picklist else None,
        )
        self.collection_fields.append(field)
        return field.model_copy()

    # ------------------------------------------------------------------
    # Work item types
    # ------------------------------------------------------------------

    def list_work_item_types(self, process_id: str) -> list[WorkItemTypeModel]:
        self._enter("list_work_item_types", process_id)
        return list(self.work_item_types[process_id])

    def create_work_item_type(self, body: dict[str, Any], process_id: str) -> WorkItemTypeModel:
        self._enter("create_work_item_type", body, process_id)
        wit = WorkItemTypeModel.model_validate(body)
        self.work_item_types[process_id].append(wit)
        self.states[(process_id, wit.id)] = [
            state.model_copy(update={"id": self._new_id("state")}) for state in default_states()
        ]
        self.layouts.setdefault((process_id, wit.id), FormLayout())
        return wit.model_copy()

    def get_work_item_type_fields(self, process_id: str, wit_ref_name: str) -> list[WorkItemTypeFieldModel]:
        self._enter("get_work_item_type_fields", process_id, wit_ref_name)
        return list(self.type_fields[(process_id, wit_ref_name)])

    def get_form_layout(self, process_id: str, wit_ref_name: str) -> FormLayout:
        self._enter("get_form_layout", process_id, wit_ref_name)
        return self.layouts.setdefault((process_id, wit_ref_name), FormLayout()).model_copy(deep=True)

    def get_states(self, process_id: str, wit_ref_name: str) -> list[WorkItemState]:
        self._enter("get_states", process_id, wit_ref_name)
        return [state.model_copy() for state in self.states.get((process_id, wit_ref_name), [])]

    def get_rules(self, process_id: str, wit_ref_name: str) -> list[ProcessRule]:
        self._enter("get_rules", process_id, wit_ref_name)
        return list(self.rules[(process_id, wit_ref_name)])

    def get_work_item_type_behaviors(self, process_id: str, wit_ref_name: str) -> list[WorkItemTypeBehavior]:
        self._enter("get_work_item_type_behaviors", process_id, wit_ref_name)
        return list(self.type_behaviors[(process_id, wit_ref_name)])

    # ------------------------------------------------------------------
    # Work item type scoped mutators
    # ------------------------------------------------------------------

    def add_field_to_work_item_type(
        self, body: dict[str, Any], process_id: str, wit_ref_name: str
    ) -> WorkItemTypeFieldModel:
        self._enter("add_field_to_work_item_type", body, process_id, wit_ref_name)
        field = WorkItemTypeFieldModel.model_validate(body)
        fields = self.type_fields[(process_id, wit_ref_name)]
        fields[:] = [f for f in fields if f.reference_name != field.reference_name]
        fields.append(field)
        return field.model_copy()

    def _layout(self, process_id: str, wit_ref_name: str) -> FormLayout:
        return self.layouts.setdefault((process_id, wit_ref_name), FormLayout())

    def _group(self, process_id: str, wit_ref_name: str, group_id: str) -> Group:
        for page in self._layout(process_id, wit_ref_name).pages:
            for section in page.sections:
                for group in section.groups:
                    if group.id == group_id:
                        return group
        raise ResourceNotFoundError(f"HTTP Error 404: group {group_id}")

    def add_page(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> Page:
        self._enter("add_page", body, process_id, wit_ref_name)
        page = Page.model_validate(
            {
                **body,
                "id": body.get("id") or self._new_id("page"),
                "sections": [{"id": "Section1"}, {"id": "Section2"}, {"id": "Section3"}],
            }
        )
        self._layout(process_id, wit_ref_name).pages.append(page)
        return page.model_copy(deep=True)

    def edit_page(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> Page:
        self._enter("edit_page", body, process_id, wit_ref_name)
        for page in self._layout(process_id, wit_ref_name).pages:
            if page.id == body.get("id"):
                page.label = body.get("label", page.label)
                return page.model_copy(deep=True)
        raise ResourceNotFoundError(f"HTTP Error 404: page {body.get('id')}")

    def add_group(
        self,
        body: dict[str, Any],
        process_id: str,
        wit_ref_name: str,
        page_id: str,
        section_id: str,
    ) -> Group:
        self._enter("add_group", body, process_id, wit_ref_name, page_id, section_id)
        group = Group.model_validate({**body, "id": self._new_id("group")})
        for page in self._layout(process_id, wit_ref_name).pages:
            if page.id != page_id:
                continue
            for section in page.sections:
                if section.id == section_id:
                    section.groups.append(group)
                    return group.model_copy(deep=True)
        raise ResourceNotFoundError(f"HTTP Error 404: section {section_id} of page {page_id}")

    def edit_group(
        self,
        body: dict[str, Any],
        process_id: str,
        wit_ref_name: str,
        page_id: str,
        section_id: str,
        group_id: str,
    ) -> Group:
        self._enter("edit_group", body, process_id, wit_ref_name, page_id, section_id, group_id)
        return Group.model_validate({**body, "id": group_id})

    def add_control(self, body: dict[str, Any], process_id: str, wit_ref_name: str, group_id: str) -> Control:
        self._enter("add_control", body, process_id, wit_ref_name, group_id)
        control = Control.model_validate(body)
        self._group(process_id, wit_ref_name, group_id).controls.append(control)
        return control.model_copy()

    def edit_control(
        self,
        body: dict[str, Any],
        process_id: str,
        wit_ref_name: str,
        group_id: str,
        control_id: str,
    ) -> Control:
        self._enter("edit_control", body, process_id, wit_ref_name, group_id, control_id)
        return Control.model_validate({**body, "id": control_id})

    def _state(self, process_id: str, wit_ref_name: str, state_id: str) -> WorkItemState:
        for state in self.states.get((process_id, wit_ref_name), []):
            if state.id == state_id:
                return state
        raise ResourceNotFoundError(f"HTTP Error 404: state {state_id}")

    def create_state(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> WorkItemState:
        self._enter("create_state", body, process_id, wit_ref_name)
        state = WorkItemState.model_validate({**body, "id": self._new_id("state")})
        self.states.setdefault((process_id, wit_ref_name), []).append(state)
        return state.model_copy()

    def update_state(
        self, body: dict[str, Any], process_id: str, wit_ref_name: str, state_id: str
    ) -> WorkItemState:
        self._enter("update_state", body, process_id, wit_ref_name, state_id)
        state = self._state(process_id, wit_ref_name, state_id)
        state.color = body.get("color", state.color)
        state.state_category = body.get("stateCategory", state.state_category)
        return state.model_copy()

    def hide_state(self, process_id: str, wit_ref_name: str, state_id: str) -> WorkItemState:
        self._enter("hide_state", process_id, wit_ref_name, state_id)
        state = self._state(process_id, wit_ref_name, state_id)
        state.hidden = True
        return state.model_copy()

    def delete_state(self, process_id: str, wit_ref_name: str, state_id: str) -> None:
        self._enter("delete_state", process_id, wit_ref_name, state_id)
        state = self._state(process_id, wit_ref_name, state_id)
        self.states[(process_id, wit_ref_name)].remove(state)

    def add_rule(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> ProcessRule:
        self._enter("add_rule", body, process_id, wit_ref_name)
        rule = ProcessRule.model_validate({**body, "id": self._new_id("rule"), "customizationType": "custom"})
        self.rules[(process_id, wit_ref_name)].append(rule)
        return rule.model_copy()

    def add_behavior_to_work_item_type(
        self, body: dict[str, Any], process_id: str, wit_ref_name: str
    ) -> WorkItemTypeBehavior:
        self._enter("add_behavior_to_work_item_type", body, process_id, wit_ref_name)
        association = WorkItemTypeBehavior.model_validate(body)
        if association.behavior.id not in self.behavior_names(process_id):
            raise ApiError(f"HTTP Error 400: behavior {association.behavior.id} does not exist", status_code=400)
        self.type_behaviors[(process_id, wit_ref_name)].append(association)
        return association.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Behaviors
    # ------------------------------------------------------------------

    def _check_unique_behavior_name(self, process_id: str, name: str, behavior_id: str) -> None:
        for behavior in self.behaviors[process_id]:
            if behavior.behavior_id != behavior_id and behavior.name == name:
                raise ApiError(f"HTTP Error 400: behavior name '{name}' is already in use", status_code=400)

    def list_behaviors(self, process_id: str) -> list[Behavior]:
        self._enter("list_behaviors", process_id)
        return [behavior.model_copy(deep=True) for behavior in self.behaviors[process_id]]

    def create_behavior(self, body: dict[str, Any], process_id: str) -> Behavior:
        self._enter("create_behavior", body, process_id)
        self._check_unique_behavior_name(process_id, body["name"], body["id"])
        if body.get("inherits") not in self.behavior_names(process_id):
            raise ApiError(f"HTTP Error 400: parent behavior {body.get('inherits')} does not exist", status_code=400)
        behavior = Behavior(
            id=body["id"],
            name=body["name"],
            color=body.get("color"),
            inherits={"id": body["inherits"]},
            customization_type="custom",
        )
        self.behaviors[process_id].append(behavior)
        return behavior.model_copy(deep=True)

    def replace_behavior(self, body: dict[str, Any], process_id: str, behavior_id: str) -> Behavior:
        self._enter("replace_behavior", body, process_id, behavior_id)
        if not self.rename_supported:
            raise ApiError(
                "HTTP Error 405: The requested resource does not support http method 'PUT'.", status_code=405
            )
        self._check_unique_behavior_name(process_id, body["name"], behavior_id)
        for behavior in self.behaviors[process_id]:
            if behavior.behavior_id == behavior_id:
                behavior.name = body["name"]
                behavior.color = body.get("color", behavior.color)
                return behavior.model_copy(deep=True)
        raise ResourceNotFoundError(f"HTTP Error 404: behavior {behavior_id}")

    # ------------------------------------------------------------------
    # Picklists
    # ------------------------------------------------------------------

    def get_picklist(self, picklist_id: str) -> PickList:
        self._enter("get_picklist", picklist_id)
        if picklist_id not in self.picklists:
            raise ResourceNotFoundError(f"HTTP Error 404: picklist {picklist_id}")
        return self.picklists[picklist_id].model_copy(deep=True)

    def create_picklist(self, body: dict[str, Any]) -> PickList:
        self._enter("create_picklist", body)
        picklist = PickList.model_validate({**body, "id": self._new_id("picklist")})
        self.picklists[picklist.id] = picklist
        return picklist.model_copy(deep=True)

    def update_picklist(self, body: dict[str, Any], picklist_id: str) -> PickList:
        self._enter("update_picklist", body, picklist_id)
        if picklist_id not in self.picklists:
            raise ResourceNotFoundError(f"HTTP Error 404: picklist {picklist_id}")
        picklist = PickList.model_validate({**body, "id": picklist_id})
        self.picklists[picklist_id] = picklist
        return picklist.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def load_payload(self, payload: ProcessPayload) -> str:
        """Store ``payload`` as if the process lived on this account."""
        pid = payload.process.type_id
        self.processes[pid] = payload.process.model_copy(deep=True)
        self.process_fields[pid] = list(payload.fields)
        self.work_item_types[pid] = list(payload.work_item_types)
        self.behaviors[pid] = list(payload.behaviors)
        for entry in payload.work_item_type_fields:
            self.type_fields[(pid, entry.work_item_type_ref_name)] = list(entry.fields)
        for entry in payload.layouts:
            self.layouts[(pid, entry.work_item_type_ref_name)] = entry.layout
        for entry in payload.states:
            self.states[(pid, entry.work_item_type_ref_name)] = list(entry.states)
        for entry in payload.rules:
            self.rules[(pid, entry.work_item_type_ref_name)] = list(entry.rules)
        for entry in payload.work_item_type_behaviors:
            self.type_behaviors[(pid, entry.work_item_type.ref_name)] = list(entry.behaviors)
        for entry in payload.wit_field_picklists:
            self.picklists[entry.picklist.id] = entry.picklist
        return pid
