"""Replay a process payload onto the destination account.

Artifacts are created strictly in dependency order: picklists, fields, work
item types, field usages, layouts, states, rules, behaviors and finally the
behavior associations of custom work item types. Every step is fatal except
the two tolerant cases controlled by configuration options (rules and
identity default values).

The payload is not modified except ``process.typeId`` (set once the process is
created), ``targetAccountInformation`` (computed by validation) and the process
name when ``targetProcessName`` overrides it. Request bodies that need
different values are built from copies.
"""

from __future__ import annotations

import json
import uuid
from collections import Counter
from collections.abc import Callable
from typing import Any, TypeVar

from process_migrator import config
from process_migrator.clients.exceptions import ApiError
from process_migrator.clients.repository import ArtifactRepository
from process_migrator.engine import TaskRunner
from process_migrator.models.configuration import ConfigurationOptions
from process_migrator.models.migration_error import (
    CancellationError,
    MigrationError,
    ProcessImportError,
    ProcessValidationError,
)
from process_migrator.models.migration_results import ImportSummary
from process_migrator.models.payload import (
    PICKLIST_NO_ACTION,
    WEBPAGE_CONTROL_TYPE,
    Behavior,
    Control,
    FormLayout,
    Group,
    Page,
    ProcessPayload,
    ProcessRule,
    WitLayout,
    WitStates,
    WorkItemState,
)
from process_migrator.validator import PreImportValidator

logger = config.logger

T = TypeVar("T")

HTTP_METHOD_NOT_ALLOWED = 405

PAGE_KEYS = {"id", "inherited", "label", "page_type", "locked", "visible", "is_contribution", "contribution"}
GROUP_KEYS = {"id", "inherited", "label", "is_contribution", "visible", "contribution", "height"}
CONTROL_KEYS = {
    "id",
    "inherited",
    "label",
    "control_type",
    "read_only",
    "watermark",
    "metadata",
    "visible",
    "is_contribution",
    "contribution",
    "height",
}


def new_reference_name() -> str:
    """Return a fresh GUID without hyphens."""
    return uuid.uuid4().hex


def page_body(page: Page) -> dict[str, Any]:
    return page.to_wire(include=PAGE_KEYS)


def group_body(group: Group, with_controls: bool = False) -> dict[str, Any]:
    body = group.to_wire(include=GROUP_KEYS)
    if with_controls:
        body["controls"] = [control_body(control) for control in group.controls]
    return body


def control_body(control: Control) -> dict[str, Any]:
    return control.to_wire(include=CONTROL_KEYS)


def state_body(state: WorkItemState) -> dict[str, Any]:
    return state.to_wire(include={"name", "color", "state_category"})


def rule_body(rule: ProcessRule) -> dict[str, Any]:
    return rule.to_wire(exclude={"id", "url", "customization_type"})


def is_rename_unsupported(error: BaseException) -> bool:
    """True when the service rejected a behavior replace because it does not support it."""
    if isinstance(error, ApiError) and error.status_code == HTTP_METHOD_NOT_ALLOWED:
        return True
    return "PUT" in str(error)


class ProcessImporter:
    """Imports a payload into the destination account."""

    def __init__(
        self,
        repository: ArtifactRepository,
        runner: TaskRunner,
        options: ConfigurationOptions | None = None,
        target_process_name: str | None = None,
        overwrite_process_on_target: bool = False,
        validator: PreImportValidator | None = None,
    ) -> None:
        self.repository = repository
        self.runner = runner
        self.options = options or ConfigurationOptions()
        self.target_process_name = target_process_name
        self.overwrite_process_on_target = overwrite_process_on_target
        self.validator = validator or PreImportValidator(
            repository, runner, self.options, max_workers=self.options.max_workers
        )
        self.summary = ImportSummary()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _call(self, operation: Callable[[], T], label: str, failure: str) -> T:
        """Run one remote call; unexpected errors become :class:`ProcessImportError`."""
        try:
            return self.runner.run(operation, label)
        except MigrationError:
            raise
        except Exception as e:
            logger.exception("Step '%s' failed", label)
            raise ProcessImportError(failure) from e

    def _tolerate(self, warning: str) -> None:
        logger.warning(warning)
        self.summary.add_warning(warning)

    @staticmethod
    def _process_id(payload: ProcessPayload) -> str:
        if not payload.process.type_id:
            msg = "[Unexpected] Process has not been created on target account."
            raise ProcessImportError(msg)
        return payload.process.type_id

    @staticmethod
    def _picklist_mapping(payload: ProcessPayload) -> dict[str, str]:
        info = payload.target_account_information
        if info is None or info.field_ref_name_to_picklist_id is None:
            msg = "[Unexpected] Target account information is not populated."
            raise ProcessImportError(msg)
        return info.field_ref_name_to_picklist_id

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    def _delete_process_on_target(self, process_name: str) -> None:
        processes = self._call(
            self.repository.list_processes,
            "Get processes on target account",
            "Failed to get processes on target account.",
        )
        for process in processes:
            if process.name.lower() != process_name.lower() or not process.type_id:
                continue
            self._call(
                lambda process=process: self.repository.delete_process(process.type_id),
                f"Delete process '{process.name}' on target account",
                "Failed to delete process on target, do you have projects created using that process?",
            )
            logger.notice("Deleted process '%s' on target account.", process.name)

    def _create_process(self, payload: ProcessPayload) -> None:
        process = payload.process
        if not process.parent_process_type_id:
            msg = f"Process '{process.name}' has no parent process, cannot import."
            raise ProcessImportError(msg)

        body = {
            "name": process.name,
            "parentProcessTypeId": process.parent_process_type_id,
            "referenceName": new_reference_name(),
        }
        if process.description is not None:
            body["description"] = process.description

        created = self._call(
            lambda: self.repository.create_process(body),
            f"Create process '{process.name}'",
            f"Failed to create process '{process.name}' on target account.",
        )
        if not created.type_id:
            msg = f"Failed to create process '{process.name}' on target account, server returned no id."
            raise ProcessImportError(msg)
        process.type_id = created.type_id
        logger.info("Created process '%s' with id '%s'.", process.name, created.type_id)

    # ------------------------------------------------------------------
    # Picklists and fields
    # ------------------------------------------------------------------

    def _import_picklists(self, payload: ProcessPayload) -> None:
        mapping = self._picklist_mapping(payload)
        processed: set[str] = set()

        for entry in payload.wit_field_picklists:
            field_ref_name = entry.field_ref_name
            # Several work item types may reference the same field
            if field_ref_name in processed:
                continue
            processed.add(field_ref_name)

            target_id = mapping.get(field_ref_name)
            if target_id == PICKLIST_NO_ACTION:
                self.summary.record("picklists", "unchanged")
                continue

            if target_id:
                body = entry.picklist.to_wire()
                body["id"] = target_id
                updated = self._call(
                    lambda: self.repository.update_picklist(body, target_id),
                    f"Update picklist '{target_id}' for field '{field_ref_name}'",
                    f"Failed to update picklist '{target_id}' for field '{field_ref_name}'.",
                )
                if not updated.id:
                    msg = f"Update picklist '{target_id}' for field '{field_ref_name}' returned an empty result."
                    raise ProcessImportError(msg)
                if Counter(updated.item_values()) != Counter(entry.picklist.item_values()):
                    msg = f"Update picklist '{target_id}' for field '{field_ref_name}' was not successful, items do not match."
                    raise ProcessImportError(msg)
                self.summary.record("picklists", "updated")
            else:
                temporary = entry.picklist.model_copy(update={"name": f"picklist_{uuid.uuid4()}"})
                body = temporary.to_wire(exclude={"id", "url"})
                created = self._call(
                    lambda: self.repository.create_picklist(body),
                    f"Create picklist for field '{field_ref_name}'",
                    f"Failed to create picklist for field '{field_ref_name}'.",
                )
                if not created.id:
                    msg = f"Failed to create picklist for field '{field_ref_name}', server returned no id."
                    raise ProcessImportError(msg)
                mapping[field_ref_name] = created.id
                self.summary.record("picklists", "created")

    def _import_fields(self, payload: ProcessPayload) -> None:
        process_id = self._process_id(payload)
        mapping = self._picklist_mapping(payload)
        picklist_fields = payload.picklist_field_ref_names()

        target_fields = self._call(
            self.repository.list_collection_fields,
            "Get fields on target account",
            "Failed to get fields from target account.",
        )
        if not target_fields:
            msg = "Failed to get fields from target account, server returned empty result."
            raise ProcessImportError(msg)
        existing = {field.reference_name for field in target_fields}

        for field in payload.fields:
            ref_name = field.reference_name
            if ref_name in existing:
                self.summary.record("fields", "existing")
                continue

            body: dict[str, Any] = {
                "id": ref_name,
                "name": field.name,
                "type": "identity" if field.is_identity else field.type,
            }
            if field.description is not None:
                body["description"] = field.description
            if ref_name in picklist_fields:
                picklist_id = mapping.get(ref_name)
                if picklist_id is None:
                    msg = f"[Unexpected] No picklist recorded for field '{ref_name}'."
                    raise ProcessImportError(msg)
                if picklist_id != PICKLIST_NO_ACTION:
                    body["pickList"] = {"id": picklist_id}

            created = self._call(
                lambda: self.repository.create_field(body, process_id),
                f"Create field '{ref_name}'",
                f"Create field '{field.name}' failed.",
            )
            if created.reference_name != ref_name:
                msg = (
                    f"Create field '{field.name}' returned reference name '{created.reference_name}' "
                    f"instead of '{ref_name}'."
                )
                raise ProcessImportError(msg)
            self.summary.record("fields", "created")

    # ------------------------------------------------------------------
    # Work item types
    # ------------------------------------------------------------------

    def _import_work_item_types(self, payload: ProcessPayload) -> None:
        process_id = self._process_id(payload)
        for wit in payload.work_item_types:
            if wit.is_system:
                msg = f"Work item type '{wit.name}' is a system work item type with no modifications, cannot import."
                raise ProcessImportError(msg)

            body = wit.to_wire()
            created = self._call(
                lambda: self.repository.create_work_item_type(body, process_id),
                f"Create work item type '{wit.id}'",
                f"Failed to create work item type '{wit.id}'.",
            )
            if created.id != wit.id:
                msg = f"Failed to create work item type '{wit.id}', server returned reference name '{created.id}'."
                raise ProcessImportError(msg)
            self.summary.record("work_item_types", "created")

    def _add_fields_to_work_item_types(self, payload: ProcessPayload) -> None:
        process_id = self._process_id(payload)
        for entry in payload.work_item_type_fields:
            wit_ref_name = entry.work_item_type_ref_name
            for field in entry.fields:
                has_identity_default = field.is_identity and field.default_value not in (None, "")
                body = field.to_wire()
                if has_identity_default:
                    # Set separately so that a rejected default can be tolerated
                    body.pop("defaultValue", None)

                added = self._call(
                    lambda: self.repository.add_field_to_work_item_type(body, process_id, wit_ref_name),
                    f"Add field '{field.reference_name}' to work item type '{wit_ref_name}'",
                    f"Failed to add field '{field.reference_name}' to work item type '{wit_ref_name}'.",
                )
                if added.reference_name != field.reference_name:
                    msg = (
                        f"Failed to add field '{field.reference_name}' to work item type '{wit_ref_name}', "
                        f"server returned reference name '{added.reference_name}'."
                    )
                    raise ProcessImportError(msg)
                self.summary.record("type_fields", "created")

                if has_identity_default:
                    self._set_identity_default(field.to_wire(), process_id, wit_ref_name)

    def _set_identity_default(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> None:
        field_ref_name = body["referenceName"]
        default_value = json.dumps(body.get("defaultValue"))
        label = f"Set default value of field '{field_ref_name}' in work item type '{wit_ref_name}'"
        try:
            self.runner.run(
                lambda: self.repository.add_field_to_work_item_type(body, process_id, wit_ref_name),
                label,
            )
            self.summary.record("type_fields", "updated")
        except CancellationError:
            raise
        except Exception as e:
            message = (
                f"Failed to set field '{field_ref_name}' with default value {default_value} "
                f"in work item type '{wit_ref_name}'"
            )
            if not self.options.continue_on_identity_default_value_failure:
                logger.exception(message)
                msg = f"{message}. Set 'continueOnIdentityDefaultValueFailure' to continue."
                raise ProcessImportError(msg) from e
            self._tolerate(f"{message}, continuing: {e}")
            self.summary.record("type_fields", "failed")

    # ------------------------------------------------------------------
    # Layouts
    # ------------------------------------------------------------------

    def _skip_contribution(self, item: Page | Group | Control) -> bool:
        return bool(item.is_contribution) and self.options.skip_import_form_contributions

    def _import_page(self, target_layout: FormLayout, wit_layout: WitLayout, page: Page, process_id: str) -> None:
        wit_ref_name = wit_layout.work_item_type_ref_name
        if self._skip_contribution(page):
            self.summary.record("pages", "skipped")
            return

        body = page_body(page)
        if any(target_page.id == page.id for target_page in target_layout.pages):
            new_page = self._call(
                lambda: self.repository.edit_page(body, process_id, wit_ref_name),
                f"Edit '{page.id}' page in {wit_ref_name}",
                f"Failed to edit '{page.id}' page in {wit_ref_name}.",
            )
            self.summary.record("pages", "updated")
        else:
            new_page = self._call(
                lambda: self.repository.add_page(body, process_id, wit_ref_name),
                f"Create '{page.id}' page in {wit_ref_name}",
                f"Failed to create '{page.id}' page in {wit_ref_name}.",
            )
            self.summary.record("pages", "created")
        if not new_page.id:
            msg = f"Failed to create or edit '{page.id}' page in {wit_ref_name}, server returned empty result."
            raise ProcessImportError(msg)

        # Inherited groups first: a custom group may reuse an inherited group's label
        logger.debug("Start import inherited group changes")
        self._import_inherited_groups(wit_ref_name, page, new_page.id, process_id)
        logger.debug("Start import custom groups and all controls")
        self._import_other_groups_and_controls(wit_ref_name, page, new_page.id, process_id)

    def _import_inherited_groups(self, wit_ref_name: str, page: Page, page_id: str, process_id: str) -> None:
        for section in page.sections:
            for group in section.groups:
                if not (group.inherited and group.overridden):
                    continue
                body = group_body(group)
                edited = self._call(
                    lambda: self.repository.edit_group(body, process_id, wit_ref_name, page_id, section.id, group.id),
                    f"Edit group '{group.id}' in page '{page_id}'",
                    f"Failed to edit group '{group.id}' in page '{page_id}'.",
                )
                if edited.id != group.id:
                    msg = f"Failed to edit group '{group.id}' in page '{page_id}', server returned id '{edited.id}'."
                    raise ProcessImportError(msg)
                self.summary.record("groups", "updated")

    def _create_group(
        self, body: dict[str, Any], wit_ref_name: str, page_id: str, section_id: str, process_id: str
    ) -> Group:
        created = self._call(
            lambda: self.repository.add_group(body, process_id, wit_ref_name, page_id, section_id),
            f"Create group '{body.get('label')}' in page '{page_id}'",
            f"Failed to create group '{body.get('label')}' in page '{page_id}'.",
        )
        if not created.id:
            msg = f"Failed to create group '{body.get('label')}' in page '{page_id}', server returned no id."
            raise ProcessImportError(msg)
        self.summary.record("groups", "created")
        return created

    def _import_html_group(self, wit_ref_name: str, page_id: str, section_id: str, group: Group, process_id: str) -> None:
        if not group.inherited:
            # HTML controls can only be created together with their group
            self._create_group(group_body(group, with_controls=True), wit_ref_name, page_id, section_id, process_id)
            self.summary.record("controls", "created", len(group.controls))
            return

        html_control = group.controls[0]
        if not (group.overridden and html_control.overridden):
            return
        body = control_body(html_control)
        edited = self._call(
            lambda: self.repository.edit_control(body, process_id, wit_ref_name, group.id, html_control.id),
            f"Edit HTML control '{html_control.id}' in group '{group.id}' in page '{page_id}'",
            f"Failed to edit HTML control '{html_control.id}' in group '{group.id}' in page '{page_id}'.",
        )
        if edited.id != html_control.id:
            msg = f"Failed to edit HTML control '{html_control.id}' in group '{group.id}', server returned id '{edited.id}'."
            raise ProcessImportError(msg)
        self.summary.record("controls", "updated")

    def _import_control(self, wit_ref_name: str, page_id: str, group_id: str, control: Control, process_id: str) -> None:
        if control.inherited and not control.overridden:
            return
        if control.control_type == WEBPAGE_CONTROL_TYPE or self._skip_contribution(control):
            self.summary.record("controls", "skipped")
            return

        body = control_body(control)
        location = f"control '{control.id}' in group '{group_id}' in page '{page_id}' in work item type '{wit_ref_name}'"
        if control.inherited:
            self._call(
                lambda: self.repository.edit_control(body, process_id, wit_ref_name, group_id, control.id),
                f"Edit {location}",
                f"Unable to edit {location}.",
            )
            self.summary.record("controls", "updated")
        else:
            self._call(
                lambda: self.repository.add_control(body, process_id, wit_ref_name, group_id),
                f"Create {location}",
                f"Unable to add {location}.",
            )
            self.summary.record("controls", "created")

    def _import_other_groups_and_controls(self, wit_ref_name: str, page: Page, page_id: str, process_id: str) -> None:
        for section in page.sections:
            for group in section.groups:
                if self._skip_contribution(group):
                    self.summary.record("groups", "skipped")
                    continue

                if group.has_html_control:
                    self._import_html_group(wit_ref_name, page_id, section.id, group, process_id)
                    continue

                group_id = group.id
                if not group.inherited:
                    group_id = self._create_group(
                        group_body(group), wit_ref_name, page_id, section.id, process_id
                    ).id
                for control in group.controls:
                    self._import_control(wit_ref_name, page_id, group_id, control, process_id)

    def _import_layouts(self, payload: ProcessPayload) -> None:
        process_id = self._process_id(payload)
        for wit_layout in payload.layouts:
            wit_ref_name = wit_layout.work_item_type_ref_name
            target_layout = self._call(
                lambda: self.repository.get_form_layout(process_id, wit_ref_name),
                f"Get layout on target process for work item type '{wit_ref_name}'",
                f"Failed to get layout of work item type '{wit_ref_name}' on target process.",
            )
            for page in wit_layout.layout.pages:
                if page.is_custom:
                    self._import_page(target_layout, wit_layout, page, process_id)

    # ------------------------------------------------------------------
    # States and rules
    # ------------------------------------------------------------------

    def _import_wit_states(self, entry: WitStates, process_id: str) -> None:
        wit_ref_name = entry.work_item_type_ref_name
        target_states = self._call(
            lambda: self.repository.get_states(process_id, wit_ref_name),
            f"Get states on target process for work item type '{wit_ref_name}'",
            f"Failed to get states definitions from work item type '{wit_ref_name}' on target account.",
        )
        if not target_states:
            msg = f"Failed to get states definitions from work item type '{wit_ref_name}' on target account, server returned empty result."
            raise ProcessImportError(msg)
        target_by_name = {state.name: state for state in target_states}

        for source_state in entry.states:
            where = f"state '{source_state.name}' in '{wit_ref_name}' work item type"
            existing = target_by_name.get(source_state.name)
            if existing is None:
                body = state_body(source_state)
                created = self._call(
                    lambda: self.repository.create_state(body, process_id, wit_ref_name),
                    f"Create {where}",
                    f"Unable to create {where}.",
                )
                if not created.id:
                    msg = f"Unable to create {where}, server returned empty result or id."
                    raise ProcessImportError(msg)
                self.summary.record("states", "created")
            elif source_state.hidden:
                hidden = self._call(
                    lambda: self.repository.hide_state(process_id, wit_ref_name, existing.id),
                    f"Hide {where}",
                    f"Unable to hide {where}.",
                )
                if hidden.name != source_state.name or not hidden.hidden:
                    msg = f"Unable to hide {where}, server returned a state that is not hidden."
                    raise ProcessImportError(msg)
                self.summary.record("states", "hidden")
            elif (
                source_state.color != existing.color
                or source_state.state_category != existing.state_category
                or source_state.name != existing.name
            ):
                body = state_body(source_state)
                updated = self._call(
                    lambda: self.repository.update_state(body, process_id, wit_ref_name, existing.id),
                    f"Update {where}",
                    f"Unable to update {where}.",
                )
                if updated.name != source_state.name:
                    msg = f"Unable to update {where}, server returned state '{updated.name}'."
                    raise ProcessImportError(msg)
                self.summary.record("states", "updated")

        source_names = {state.name for state in entry.states}
        for target_state in target_states:
            if target_state.name in source_names:
                continue
            where = f"state '{target_state.name}' in '{wit_ref_name}' work item type"
            self._call(
                lambda: self.repository.delete_state(process_id, wit_ref_name, target_state.id),
                f"Delete {where}",
                f"Unable to delete {where}.",
            )
            self.summary.record("states", "deleted")

    def _import_states(self, payload: ProcessPayload) -> None:
        process_id = self._process_id(payload)
        for entry in payload.states:
            self._import_wit_states(entry, process_id)

    def _import_rule(self, rule: ProcessRule, wit_ref_name: str, process_id: str) -> None:
        rule_name = rule.name or rule.id
        label = f"Create rule '{rule_name}' in work item type '{wit_ref_name}'"
        body = rule_body(rule)
        try:
            created = self.runner.run(lambda: self.repository.add_rule(body, process_id, wit_ref_name), label)
            if not created.id:
                msg = f"Unable to create rule '{rule_name}' in work item type '{wit_ref_name}', server returned empty result or id."
                raise ProcessImportError(msg)
            self.summary.record("rules", "created")
        except CancellationError:
            raise
        except Exception as e:
            if not self.options.continue_on_rule_import_failure:
                logger.exception("Step '%s' failed", label)
                msg = f"Unable to create rule '{rule_name}' in work item type '{wit_ref_name}'."
                raise ProcessImportError(msg) from e
            self._tolerate(f"Failed to import rule '{rule_name}' in work item type '{wit_ref_name}', continuing: {e}")
            logger.debug("Rule not imported:\n%s", json.dumps(rule.to_wire(), indent=2))
            self.summary.record("rules", "failed")

    def _import_rules(self, payload: ProcessPayload) -> None:
        process_id = self._process_id(payload)
        for entry in payload.rules:
            for rule in entry.rules:
                if rule.is_system:
                    continue
                self._import_rule(rule, entry.work_item_type_ref_name, process_id)

    # ------------------------------------------------------------------
    # Behaviors
    # ------------------------------------------------------------------

    @staticmethod
    def _describe_behavior(behavior: Behavior) -> str:
        return (
            f"id={behavior.id!r}, referenceName={behavior.reference_name!r}, "
            f"name={behavior.name!r}, inherits={behavior.parent_id!r}"
        )

    def _replace_behavior(self, behavior_id: str, body: dict[str, Any], process_id: str, label: str) -> bool:
        """Rename a behavior. Returns False when the service does not support it."""
        try:
            self.runner.run(lambda: self.repository.replace_behavior(body, process_id, behavior_id), label)
            return True
        except CancellationError:
            raise
        except Exception as e:
            if not is_rename_unsupported(e):
                logger.exception("Step '%s' failed", label)
                msg = f"Failed to restore behavior name for '{behavior_id}'."
                raise ProcessImportError(msg) from e
            self._tolerate(f"Behavior name update not supported for '{behavior_id}': {e}")
            return False

    def _import_behaviors(self, payload: ProcessPayload) -> None:
        """Create and rename behaviors in two passes.

        Pass one creates missing behaviors under unique temporary names and
        moves existing behaviors whose names differ to temporary names too.
        Pass two renames every remembered behavior to its final name. Names
        that are swapped between two behaviors therefore never collide.
        """
        process_id = self._process_id(payload)
        targets = self._call(
            lambda: self.repository.list_behaviors(process_id),
            "Get behaviors on target account",
            "Failed to get behaviors on target account.",
        )
        target_by_id = {behavior.behavior_id: behavior for behavior in targets if behavior.behavior_id}

        final_names: dict[str, dict[str, Any]] = {}
        for behavior in payload.behaviors:
            behavior_id = behavior.behavior_id
            if not behavior_id or not behavior_id.strip():
                msg = f"Behavior has no identifier: {self._describe_behavior(behavior)}."
                raise ProcessImportError(msg)
            final_body = {"name": behavior.name, "color": behavior.color}

            existing = target_by_id.get(behavior_id)
            if existing is None:
                parent_id = behavior.parent_id
                if not parent_id or not parent_id.strip():
                    msg = f"Cannot create behavior without parent behavior: {self._describe_behavior(behavior)}."
                    raise ProcessImportError(msg)

                create_body = {
                    "id": behavior_id,
                    "name": new_reference_name(),
                    "color": behavior.color,
                    "inherits": parent_id,
                }
                created = self._call(
                    lambda: self.repository.create_behavior(create_body, process_id),
                    f"Create behavior '{behavior_id}' with temporary name",
                    f"Failed to create behavior '{behavior.name}'.",
                )
                if created.behavior_id != behavior_id:
                    msg = f"Failed to create behavior '{behavior.name}', server returned id '{created.behavior_id}'."
                    raise ProcessImportError(msg)
                final_names[behavior_id] = final_body
                self.summary.record("behaviors", "created")
            elif behavior.name and existing.name != behavior.name:
                temporary_body = {"name": new_reference_name(), "color": existing.color or behavior.color}
                if self._replace_behavior(
                    behavior_id, temporary_body, process_id, f"Replace behavior '{behavior_id}' with temporary name"
                ):
                    final_names[behavior_id] = final_body
            else:
                self.summary.record("behaviors", "unchanged")

        for behavior_id, body in final_names.items():
            if self._replace_behavior(
                behavior_id, body, process_id, f"Replace behavior '{behavior_id}' to its real name '{body['name']}'"
            ):
                self.summary.record("behaviors", "renamed")

    def _add_behaviors_to_work_item_types(self, payload: ProcessPayload) -> None:
        process_id = self._process_id(payload)
        for entry in payload.work_item_type_behaviors:
            if not entry.work_item_type.is_custom:
                continue
            wit_ref_name = entry.work_item_type.ref_name
            for type_behavior in entry.behaviors:
                behavior_id = type_behavior.behavior.id
                body = type_behavior.to_wire()
                added = self._call(
                    lambda: self.repository.add_behavior_to_work_item_type(body, process_id, wit_ref_name),
                    f"Add behavior '{behavior_id}' to work item type '{wit_ref_name}'",
                    f"Failed to add behavior '{behavior_id}' to work item type '{wit_ref_name}'.",
                )
                if added.behavior.id != behavior_id:
                    msg = f"Failed to add behavior '{behavior_id}' to work item type '{wit_ref_name}', id does not match."
                    raise ProcessImportError(msg)
                self.summary.record("type_behaviors", "created")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def _create_components(self, payload: ProcessPayload) -> None:
        steps: list[tuple[Callable[[ProcessPayload], None], str]] = [
            # Picklists must exist before the fields that reference them
            (self._import_picklists, "Import picklists on target account"),
            (self._import_fields, "Import fields on target account"),
            (self._import_work_item_types, "Import work item types on target process"),
            (self._add_fields_to_work_item_types, "Add field to work item types on target process"),
            (self._import_layouts, "Import work item form layouts on target process"),
            (self._import_states, "Import states on target process"),
            (self._import_rules, "Import rules on target process"),
            (self._import_behaviors, "Import behaviors on target process"),
            (self._add_behaviors_to_work_item_types, "Add behavior to work item types on target process"),
        ]
        for step, label in steps:
            self.runner.run_no_retry(lambda step=step: step(payload), label)

    def import_process(self, payload: ProcessPayload) -> ImportSummary:
        """Validate ``payload`` against the destination and replay it.

        Returns:
            Counters of the artifacts created, updated, deleted or skipped

        Raises:
            ProcessValidationError: Validation failed, nothing was created
            ProcessImportError: A replay step failed, partial artifacts may exist
            CancellationError: The user cancelled the run

        """
        logger.info("Process import started.")
        self.summary = ImportSummary()

        try:
            if self.target_process_name:
                payload.process.name = self.target_process_name

            self.runner.run_no_retry(
                lambda: self.validator.validate(payload, skip_process_existence=self.overwrite_process_on_target),
                "Pre-import validation on target account",
            )

            if self.overwrite_process_on_target:
                self.runner.run_no_retry(
                    lambda: self._delete_process_on_target(payload.process.name),
                    "Delete process (if exist) on target account",
                )

            self.runner.run_no_retry(lambda: self._create_process(payload), "Create process on target account")
            self._create_components(payload)
        except ProcessValidationError:
            logger.error("Pre-import validation failed. No artifacts were created on target process")
            raise

        logger.success("Process import completed successfully.")
        return self.summary
