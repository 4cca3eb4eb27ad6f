"""Pre-import validation against the destination account.

Runs before anything is created on the destination. Besides rejecting
conflicting payloads it records the destination snapshot the importer
needs in ``payload.target_account_information``.
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor

from process_migrator import config
from process_migrator.clients.exceptions import ClientError
from process_migrator.clients.repository import ArtifactRepository
from process_migrator.engine import TaskRunner
from process_migrator.models.configuration import ConfigurationOptions
from process_migrator.models.migration_error import ProcessValidationError
from process_migrator.models.payload import (
    PICKLIST_NO_ACTION,
    PickList,
    ProcessPayload,
    TargetAccountInformation,
    WorkItemField,
)

logger = config.logger

IDENTITY_FIELD_TYPE = "identity"

# Process scoped field types mapped to their collection scoped equivalents
FIELD_TYPE_MAP = {
    "string": "string",
    "integer": "integer",
    "datetime": "dateTime",
    "plaintext": "plainText",
    "html": "html",
    "treepath": "treePath",
    "history": "history",
    "double": "double",
    "guid": "guid",
    "boolean": "boolean",
    "identity": "identity",
    "picklistinteger": "picklistInteger",
    "pickliststring": "picklistString",
    "picklistdouble": "picklistDouble",
}


def destination_field_type(field: WorkItemField) -> str:
    """Return the collection scoped type equivalent of a process scoped field.

    Types missing from :data:`FIELD_TYPE_MAP` are returned as reported so
    they are compared verbatim.
    """
    if field.is_identity:
        return IDENTITY_FIELD_TYPE
    field_type = field.type or ""
    return FIELD_TYPE_MAP.get(field_type.lower(), field_type)


def _is_identity(field: WorkItemField) -> bool:
    return bool(field.is_identity) or (field.type or "").lower() == IDENTITY_FIELD_TYPE


def picklists_match(source: PickList, destination: PickList) -> bool:
    """True when both lists hold the same item values and suggested flag."""
    if bool(source.is_suggested) != bool(destination.is_suggested):
        return False
    return Counter(source.item_values()) == Counter(destination.item_values())


class PreImportValidator:
    """Checks a payload against the destination account before import."""

    def __init__(
        self,
        repository: ArtifactRepository,
        runner: TaskRunner,
        options: ConfigurationOptions | None = None,
        max_workers: int = 8,
    ) -> None:
        self.repository = repository
        self.runner = runner
        self.options = options or ConfigurationOptions()
        self.max_workers = max_workers

    def _validate_process_class(self, payload: ProcessPayload) -> None:
        if payload.process.is_system:
            msg = "Only inherited process is supported to be imported."
            raise ProcessValidationError(msg)

    def _validate_process(self, payload: ProcessPayload) -> None:
        try:
            processes = self.runner.run(self.repository.list_processes, "Get processes on target account")
        except ClientError as e:
            msg = "Failed to get processes on target account, check account url, token and token permission."
            raise ProcessValidationError(msg) from e

        name = payload.process.name.lower()
        for process in processes:
            if process.name.lower() == name:
                msg = f"Process with same name '{process.name}' already exists on target account."
                raise ProcessValidationError(msg)

    def _validate_fields(self, payload: ProcessPayload, info: TargetAccountInformation) -> None:
        try:
            target_fields = self.runner.run(self.repository.list_collection_fields, "Get fields on target account")
        except ClientError as e:
            msg = "Failed to get fields on target account."
            raise ProcessValidationError(msg) from e

        info.collection_fields = target_fields
        for source_field in payload.fields:
            source_type = destination_field_type(source_field).lower()
            for target_field in target_fields:
                same_field = (
                    target_field.reference_name == source_field.reference_name
                    or (source_field.name is not None and target_field.name == source_field.name)
                )
                if not same_field or (target_field.type or "").lower() == source_type:
                    continue
                if _is_identity(source_field) and _is_identity(target_field):
                    continue
                msg = (
                    f"Field in target collection conflicts with '{source_field.name}' field "
                    f"with a different reference name or type."
                )
                raise ProcessValidationError(msg)

    def _get_target_picklists(self, payload: ProcessPayload, info: TargetAccountInformation) -> dict[str, PickList]:
        """Fetch destination picklists of the payload's picklist fields concurrently."""
        wanted = payload.picklist_field_ref_names()
        fields = [
            field
            for field in info.collection_fields or []
            if field.is_picklist and field.picklist_id and field.reference_name in wanted
        ]
        if not fields:
            return {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                field.reference_name: executor.submit(
                    self.runner.run,
                    lambda field=field: self.repository.get_picklist(field.picklist_id),
                    f"Get picklist '{field.picklist_id}' of field '{field.reference_name}' on target account",
                )
                for field in fields
            }
            try:
                return {ref_name: future.result() for ref_name, future in futures.items()}
            except ClientError as e:
                msg = "Failed to get picklists on target account."
                raise ProcessValidationError(msg) from e

    def _validate_picklists(self, payload: ProcessPayload, info: TargetAccountInformation) -> None:
        mapping = info.field_ref_name_to_picklist_id
        target_picklists = self._get_target_picklists(payload, info)

        for entry in payload.wit_field_picklists:
            field_ref_name = entry.field_ref_name
            target_picklist = target_picklists.get(field_ref_name)
            if target_picklist is None:
                # Left unset: the picklist is created during import
                continue

            if picklists_match(entry.picklist, target_picklist):
                mapping[field_ref_name] = PICKLIST_NO_ACTION
            elif self.options.overwrite_picklist:
                mapping[field_ref_name] = target_picklist.id
            else:
                msg = (
                    f"Picklist field {field_ref_name} exist on target account but have different items "
                    f"than source, set 'overwritePicklist' option to overwrite"
                )
                raise ProcessValidationError(msg)

    def validate(self, payload: ProcessPayload, skip_process_existence: bool = False) -> TargetAccountInformation:
        """Validate ``payload`` against the destination and record its snapshot.

        Args:
            payload: Payload about to be imported
            skip_process_existence: Skip the same-name process check (overwrite mode)

        Returns:
            The populated ``payload.target_account_information``

        Raises:
            ProcessValidationError: On the first conflict found

        """
        info = TargetAccountInformation(field_ref_name_to_picklist_id={})
        payload.target_account_information = info

        self._validate_process_class(payload)
        if not skip_process_existence:
            self.runner.run_no_retry(
                lambda: self._validate_process(payload), "Validate process existence on target account"
            )
        self.runner.run_no_retry(lambda: self._validate_fields(payload, info), "Validate fields on target account")
        self.runner.run_no_retry(
            lambda: self._validate_picklists(payload, info), "Validate picklists on target account"
        )
        logger.info("Pre-import validation passed.")
        return info
