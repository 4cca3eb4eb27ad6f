"""Export a process and all of its artifacts from the source account.

Remote reads fan out over a thread pool. Every read goes through the task
runner; the assembled payload is independent of completion order.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any, TypeVar

from process_migrator import config
from process_migrator.clients.exceptions import ClientError
from process_migrator.clients.repository import ArtifactRepository
from process_migrator.engine import TaskRunner
from process_migrator.models.migration_error import MigrationError, ProcessExportError
from process_migrator.models.payload import (
    ProcessModel,
    ProcessPayload,
    WitBehaviors,
    WitBehaviorsInfo,
    WitFieldPicklist,
    WitLayout,
    WitRules,
    WitStates,
    WorkItemTypeFields,
    WorkItemTypeModel,
)

logger = config.logger

T = TypeVar("T")

DERIVED_PROCESS_CLASS = "derived"


def _gather(futures: Iterable[Future]) -> None:
    """Wait for all futures, re-raising the first failure after cancelling the rest."""
    pending = list(futures)
    for future in as_completed(pending):
        try:
            future.result()
        except BaseException:
            for other in pending:
                other.cancel()
            raise


class ProcessExporter:
    """Reads a derived process from the source account into a payload."""

    def __init__(self, repository: ArtifactRepository, runner: TaskRunner, max_workers: int = 8) -> None:
        self.repository = repository
        self.runner = runner
        self.max_workers = max_workers

        self._lock = threading.Lock()
        self._known_picklist_ids: set[str] = set()

    def _call(self, operation: Callable[[], T], label: str) -> T:
        return self.runner.run(operation, label)

    def _get_source_process(self, process_name: str) -> ProcessModel:
        """Resolve ``process_name`` case-insensitively to a single derived process."""
        try:
            processes = self._call(self.repository.list_processes, "Get processes on source account")
        except ClientError as e:
            msg = "Failed to get processes on source account, check account url, token and token permissions."
            raise ProcessExportError(msg) from e

        lower_name = process_name.lower()
        matches = [p for p in processes if p.name.lower() == lower_name]
        if not matches:
            msg = f"Process '{process_name}' is not found on source account."
            raise ProcessExportError(msg)
        if len(matches) > 1:
            msg = f"Process name '{process_name}' matches {len(matches)} processes on source account."
            raise ProcessExportError(msg)

        process = matches[0]
        if process.process_class != DERIVED_PROCESS_CLASS:
            msg = f"Process '{process_name}' is not a derived process, not supported."
            raise ProcessExportError(msg)
        if not process.type_id:
            msg = f"Process '{process_name}' has no type id on source account."
            raise ProcessExportError(msg)
        return process

    def _collect_type_fields(
        self,
        process_id: str,
        wit: WorkItemTypeModel,
        picklists: list[WitFieldPicklist],
    ) -> WorkItemTypeFields:
        fields = self._call(
            lambda: self.repository.get_work_item_type_fields(process_id, wit.id),
            f"Get fields of work item type '{wit.id}'",
        )
        for field in fields:
            if field.pick_list is None:
                continue
            picklist_id = field.pick_list.id
            # The same picklist may back fields on several work item types
            with self._lock:
                if picklist_id in self._known_picklist_ids:
                    continue
                self._known_picklist_ids.add(picklist_id)

            picklist = self._call(
                lambda picklist_id=picklist_id: self.repository.get_picklist(picklist_id),
                f"Get picklist '{picklist_id}' of field '{field.reference_name}'",
            )
            with self._lock:
                picklists.append(
                    WitFieldPicklist(
                        workitemtype_ref_name=wit.id,
                        field_ref_name=field.reference_name,
                        picklist=picklist,
                    )
                )
        return WorkItemTypeFields(work_item_type_ref_name=wit.id, fields=fields)

    def _get_components(self, process_id: str) -> ProcessPayload:
        repo = self.repository
        per_type: dict[tuple[str, str], Any] = {}
        picklists: list[WitFieldPicklist] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            process_future = executor.submit(self._call, lambda: repo.get_process(process_id), "Get process")
            fields_future = executor.submit(
                self._call, lambda: repo.list_process_fields(process_id), "Get process fields"
            )
            behaviors_future = executor.submit(
                self._call, lambda: repo.list_behaviors(process_id), "Get process behaviors"
            )
            types_future = executor.submit(
                self._call, lambda: repo.list_work_item_types(process_id), "Get work item types"
            )
            _gather([process_future, fields_future, behaviors_future, types_future])

            work_item_types: list[WorkItemTypeModel] = types_future.result()
            non_system_types = [wit for wit in work_item_types if not wit.is_system]

            keyed: dict[Future, tuple[str, str]] = {}
            for wit in work_item_types:
                future = executor.submit(
                    self._call,
                    lambda wit=wit: repo.get_work_item_type_behaviors(process_id, wit.id),
                    f"Get behaviors of work item type '{wit.id}'",
                )
                keyed[future] = (wit.id, "behaviors")

            for wit in non_system_types:
                keyed[executor.submit(self._collect_type_fields, process_id, wit, picklists)] = (wit.id, "fields")
                for kind, read in (
                    ("layout", repo.get_form_layout),
                    ("states", repo.get_states),
                    ("rules", repo.get_rules),
                ):
                    future = executor.submit(
                        self._call,
                        lambda read=read, wit=wit: read(process_id, wit.id),
                        f"Get {kind} of work item type '{wit.id}'",
                    )
                    keyed[future] = (wit.id, kind)

            _gather(keyed)
            for future, key in keyed.items():
                per_type[key] = future.result()

        return ProcessPayload(
            process=process_future.result(),
            work_item_types=non_system_types,
            fields=fields_future.result(),
            work_item_type_fields=[per_type[(wit.id, "fields")] for wit in non_system_types],
            wit_field_picklists=picklists,
            layouts=[
                WitLayout(work_item_type_ref_name=wit.id, layout=per_type[(wit.id, "layout")])
                for wit in non_system_types
            ],
            behaviors=behaviors_future.result(),
            work_item_type_behaviors=[
                WitBehaviors(
                    work_item_type=WitBehaviorsInfo(ref_name=wit.id, work_item_type_class=wit.work_item_type_class),
                    behaviors=per_type[(wit.id, "behaviors")],
                )
                for wit in work_item_types
            ],
            states=[
                WitStates(work_item_type_ref_name=wit.id, states=per_type[(wit.id, "states")])
                for wit in non_system_types
            ],
            rules=[
                WitRules(work_item_type_ref_name=wit.id, rules=per_type[(wit.id, "rules")])
                for wit in non_system_types
            ],
        )

    def export_process(self, process_name: str) -> ProcessPayload:
        """Export the process named ``process_name`` from the source account.

        Raises:
            ProcessExportError: If the process cannot be resolved or read
            CancellationError: If the user cancelled the run

        """
        logger.info("Export process started.")
        with self._lock:
            self._known_picklist_ids.clear()

        process = self._get_source_process(process_name)
        try:
            payload = self._get_components(process.type_id)
        except MigrationError:
            raise
        except Exception as e:
            logger.exception("Failed to read artifacts of process '%s'", process.name)
            msg = f"Failed to read artifacts of process '{process.name}'."
            raise ProcessExportError(msg) from e

        logger.success(
            "Export process completed: %d work item types, %d fields, %d picklists.",
            len(payload.work_item_types),
            len(payload.fields),
            len(payload.wit_field_picklists),
        )
        return payload
