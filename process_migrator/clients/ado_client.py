"""Azure DevOps REST client for work item tracking process artifacts.

Implements :class:`~process_migrator.clients.repository.ArtifactRepository`
on top of a :class:`requests.Session` authenticated with a personal access
token. HTTP failures are mapped onto the client exceptions in
:mod:`process_migrator.clients.exceptions`.
"""

from typing import Any, TypeVar

import requests
from pydantic import BaseModel
from requests import Response

from process_migrator import config
from process_migrator.clients.exceptions import (
    ApiError,
    AuthenticationError,
    ClientConnectionError,
    JsonParseError,
    ResourceNotFoundError,
)
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

logger = config.logger

M = TypeVar("M", bound=BaseModel)

HTTP_BAD_REQUEST_MIN = 400
HTTP_NOT_FOUND = 404
HTTP_NO_CONTENT = 204

# Payload models follow the 4.1 shapes (``properties.class``, ``inherits.id``).
PROCESSES_API_VERSION = "4.1-preview.1"
PROCESS_DEFINITIONS_API_VERSION = "4.1-preview.1"
FIELDS_API_VERSION = "7.1"

DEFAULT_TIMEOUT = 60.0


class AzureDevOpsClient:
    """Work item tracking process API of one Azure DevOps account."""

    def __init__(
        self,
        account_url: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            account_url: Organization or collection URL, e.g. https://dev.azure.com/contoso
            token: Personal access token
            timeout: Per request timeout in seconds
            session: Optional preconfigured session

        """
        self.account_url = account_url.rstrip("/")
        self.timeout = timeout
        self.request_count = 0

        self.session: requests.Session = session or requests.Session()
        # PATs are sent as basic auth with an empty user name
        self.session.auth = ("", token)
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _handle_response(self, response: Response) -> None:
        """Raise the matching client exception for an error response."""
        if response.status_code < HTTP_BAD_REQUEST_MIN:
            return

        error_msg = f"HTTP Error {response.status_code}: {response.reason}"
        detail = None
        try:
            error_json = response.json()
            if isinstance(error_json, dict) and error_json.get("message"):
                detail = str(error_json["message"])
                error_msg = f"{error_msg} - {detail}"
        except ValueError:
            logger.debug("Error response from %s has no JSON body", response.url)

        if response.status_code == HTTP_NOT_FOUND:
            raise ResourceNotFoundError(error_msg)
        if response.status_code in {401, 403}:
            raise AuthenticationError(error_msg)
        raise ApiError(error_msg, status_code=response.status_code, detail=detail)

    def _request(
        self,
        method: str,
        path: str,
        api_version: str,
        body: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON result.

        List responses (``{"count": n, "value": [...]}``) are unwrapped to the
        list. Empty responses return ``None``.
        """
        url = f"{self.account_url}/_apis/{path}"
        query = {"api-version": api_version}
        if params:
            query.update(params)

        self.request_count += 1
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                params=query,
                json=body,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            msg = f"{method} {url} failed: {e}"
            raise ClientConnectionError(msg) from e

        self._handle_response(response)

        if response.status_code == HTTP_NO_CONTENT or not response.content:
            return None
        try:
            data = response.json()
        except ValueError as e:
            msg = f"Invalid JSON returned by {method} {url}"
            raise JsonParseError(msg) from e

        if isinstance(data, dict) and "value" in data and set(data) <= {"count", "value"}:
            return data["value"]
        return data

    @staticmethod
    def _model(model_class: type[M], data: Any) -> M:
        if data is None:
            msg = f"Server returned an empty {model_class.__name__}"
            raise ApiError(msg)
        return model_class.model_validate(data)

    @staticmethod
    def _models(model_class: type[M], data: Any) -> list[M]:
        return [model_class.model_validate(item) for item in data or []]

    @staticmethod
    def _definitions(process_id: str, *parts: str) -> str:
        return "/".join(["work/processdefinitions", process_id, *parts])

    @staticmethod
    def _processes(process_id: str, *parts: str) -> str:
        return "/".join(["work/processes", process_id, *parts])

    # ------------------------------------------------------------------
    # Processes
    # ------------------------------------------------------------------

    def list_processes(self) -> list[ProcessModel]:
        data = self._request("GET", "work/processes", PROCESSES_API_VERSION)
        return self._models(ProcessModel, data)

    def get_process(self, process_id: str) -> ProcessModel:
        data = self._request("GET", self._processes(process_id), PROCESSES_API_VERSION)
        return self._model(ProcessModel, data)

    def create_process(self, body: dict[str, Any]) -> ProcessModel:
        data = self._request("POST", "work/processes", PROCESSES_API_VERSION, body=body)
        return self._model(ProcessModel, data)

    def delete_process(self, process_id: str) -> None:
        self._request("DELETE", self._processes(process_id), PROCESSES_API_VERSION)

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def list_collection_fields(self) -> list[WorkItemField]:
        data = self._request("GET", "wit/fields", FIELDS_API_VERSION)
        return self._models(WorkItemField, data)

    def list_process_fields(self, process_id: str) -> list[WorkItemField]:
        data = self._request("GET", self._processes(process_id, "fields"), PROCESSES_API_VERSION)
        return self._models(WorkItemField, data)

    def create_field(self, body: dict[str, Any], process_id: str) -> WorkItemField:
        data = self._request(
            "POST", self._definitions(process_id, "fields"), PROCESS_DEFINITIONS_API_VERSION, body=body
        )
        return self._model(WorkItemField, data)

    # ------------------------------------------------------------------
    # Work item types
    # ------------------------------------------------------------------

    def list_work_item_types(self, process_id: str) -> list[WorkItemTypeModel]:
        data = self._request("GET", self._processes(process_id, "workitemtypes"), PROCESSES_API_VERSION)
        return self._models(WorkItemTypeModel, data)

    def create_work_item_type(self, body: dict[str, Any], process_id: str) -> WorkItemTypeModel:
        data = self._request(
            "POST",
            self._definitions(process_id, "workitemtypes"),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(WorkItemTypeModel, data)

    def get_work_item_type_fields(self, process_id: str, wit_ref_name: str) -> list[WorkItemTypeFieldModel]:
        data = self._request(
            "GET",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "fields"),
            PROCESS_DEFINITIONS_API_VERSION,
        )
        return self._models(WorkItemTypeFieldModel, data)

    def get_form_layout(self, process_id: str, wit_ref_name: str) -> FormLayout:
        data = self._request(
            "GET",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "layout"),
            PROCESS_DEFINITIONS_API_VERSION,
        )
        return self._model(FormLayout, data)

    def get_states(self, process_id: str, wit_ref_name: str) -> list[WorkItemState]:
        data = self._request(
            "GET",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "states"),
            PROCESS_DEFINITIONS_API_VERSION,
        )
        return self._models(WorkItemState, data)

    def get_rules(self, process_id: str, wit_ref_name: str) -> list[ProcessRule]:
        data = self._request(
            "GET",
            self._processes(process_id, "workItemTypes", wit_ref_name, "rules"),
            PROCESSES_API_VERSION,
        )
        return self._models(ProcessRule, data)

    def get_work_item_type_behaviors(self, process_id: str, wit_ref_name: str) -> list[WorkItemTypeBehavior]:
        data = self._request(
            "GET",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "behaviors"),
            PROCESS_DEFINITIONS_API_VERSION,
        )
        return self._models(WorkItemTypeBehavior, data)

    # ------------------------------------------------------------------
    # Work item type scoped mutators
    # ------------------------------------------------------------------

    def add_field_to_work_item_type(
        self, body: dict[str, Any], process_id: str, wit_ref_name: str
    ) -> WorkItemTypeFieldModel:
        data = self._request(
            "POST",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "fields"),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(WorkItemTypeFieldModel, data)

    def add_page(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> Page:
        data = self._request(
            "POST",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "layout", "pages"),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(Page, data)

    def edit_page(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> Page:
        data = self._request(
            "PATCH",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "layout", "pages"),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(Page, data)

    def add_group(
        self,
        body: dict[str, Any],
        process_id: str,
        wit_ref_name: str,
        page_id: str,
        section_id: str,
    ) -> Group:
        path = self._definitions(
            process_id, "workitemtypes", wit_ref_name, "layout", "pages", page_id, "sections", section_id, "groups"
        )
        data = self._request("POST", path, PROCESS_DEFINITIONS_API_VERSION, body=body)
        return self._model(Group, data)

    def edit_group(
        self,
        body: dict[str, Any],
        process_id: str,
        wit_ref_name: str,
        page_id: str,
        section_id: str,
        group_id: str,
    ) -> Group:
        path = self._definitions(
            process_id,
            "workitemtypes",
            wit_ref_name,
            "layout",
            "pages",
            page_id,
            "sections",
            section_id,
            "groups",
            group_id,
        )
        data = self._request("PATCH", path, PROCESS_DEFINITIONS_API_VERSION, body=body)
        return self._model(Group, data)

    def add_control(self, body: dict[str, Any], process_id: str, wit_ref_name: str, group_id: str) -> Control:
        path = self._definitions(process_id, "workitemtypes", wit_ref_name, "layout", "groups", group_id, "controls")
        data = self._request("POST", path, PROCESS_DEFINITIONS_API_VERSION, body=body)
        return self._model(Control, data)

    def edit_control(
        self,
        body: dict[str, Any],
        process_id: str,
        wit_ref_name: str,
        group_id: str,
        control_id: str,
    ) -> Control:
        path = self._definitions(
            process_id, "workitemtypes", wit_ref_name, "layout", "groups", group_id, "controls", control_id
        )
        data = self._request("PATCH", path, PROCESS_DEFINITIONS_API_VERSION, body=body)
        return self._model(Control, data)

    def create_state(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> WorkItemState:
        data = self._request(
            "POST",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "states"),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(WorkItemState, data)

    def update_state(
        self, body: dict[str, Any], process_id: str, wit_ref_name: str, state_id: str
    ) -> WorkItemState:
        data = self._request(
            "PATCH",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "states", state_id),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(WorkItemState, data)

    def hide_state(self, process_id: str, wit_ref_name: str, state_id: str) -> WorkItemState:
        data = self._request(
            "PUT",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "states", state_id),
            PROCESS_DEFINITIONS_API_VERSION,
            body={"hidden": True},
        )
        return self._model(WorkItemState, data)

    def delete_state(self, process_id: str, wit_ref_name: str, state_id: str) -> None:
        self._request(
            "DELETE",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "states", state_id),
            PROCESS_DEFINITIONS_API_VERSION,
        )

    def add_rule(self, body: dict[str, Any], process_id: str, wit_ref_name: str) -> ProcessRule:
        data = self._request(
            "POST",
            self._processes(process_id, "workItemTypes", wit_ref_name, "rules"),
            PROCESSES_API_VERSION,
            body=body,
        )
        return self._model(ProcessRule, data)

    def add_behavior_to_work_item_type(
        self, body: dict[str, Any], process_id: str, wit_ref_name: str
    ) -> WorkItemTypeBehavior:
        data = self._request(
            "POST",
            self._definitions(process_id, "workitemtypes", wit_ref_name, "behaviors"),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(WorkItemTypeBehavior, data)

    # ------------------------------------------------------------------
    # Behaviors
    # ------------------------------------------------------------------

    def list_behaviors(self, process_id: str) -> list[Behavior]:
        data = self._request("GET", self._processes(process_id, "behaviors"), PROCESSES_API_VERSION)
        return self._models(Behavior, data)

    def create_behavior(self, body: dict[str, Any], process_id: str) -> Behavior:
        data = self._request(
            "POST", self._definitions(process_id, "behaviors"), PROCESS_DEFINITIONS_API_VERSION, body=body
        )
        return self._model(Behavior, data)

    def replace_behavior(self, body: dict[str, Any], process_id: str, behavior_id: str) -> Behavior:
        data = self._request(
            "PUT",
            self._definitions(process_id, "behaviors", behavior_id),
            PROCESS_DEFINITIONS_API_VERSION,
            body=body,
        )
        return self._model(Behavior, data)

    # ------------------------------------------------------------------
    # Picklists
    # ------------------------------------------------------------------

    def get_picklist(self, picklist_id: str) -> PickList:
        data = self._request("GET", f"work/processdefinitions/lists/{picklist_id}", PROCESS_DEFINITIONS_API_VERSION)
        return self._model(PickList, data)

    def create_picklist(self, body: dict[str, Any]) -> PickList:
        data = self._request("POST", "work/processdefinitions/lists", PROCESS_DEFINITIONS_API_VERSION, body=body)
        return self._model(PickList, data)

    def update_picklist(self, body: dict[str, Any], picklist_id: str) -> PickList:
        data = self._request(
            "PUT", f"work/processdefinitions/lists/{picklist_id}", PROCESS_DEFINITIONS_API_VERSION, body=body
        )
        return self._model(PickList, data)
