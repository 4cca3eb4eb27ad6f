"""Process payload models.

The payload is the artifact graph produced by export and consumed by import.
Models serialize with the camelCase keys used by the REST API and the payload
file; unknown properties returned by the service are kept so a payload
round-trips without loss.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

PICKLIST_NO_ACTION = "PICKLIST_NO_ACTION"

HTML_CONTROL_TYPE = "HtmlFieldControl"
WEBPAGE_CONTROL_TYPE = "WebpageControl"

# Newer process API versions report derivation as a customization type
CUSTOMIZATION_TO_CLASS = {"system": "system", "inherited": "derived", "custom": "custom"}


def class_from_customization(customization: Any) -> str | None:
    """Translate a ``customization`` value into the equivalent ``class`` value."""
    if not isinstance(customization, str):
        return None
    return CUSTOMIZATION_TO_CLASS.get(customization.lower(), customization.lower())


class ApiModel(BaseModel):
    """Base for all wire models: camelCase aliases, extra properties preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self, **kwargs: Any) -> dict[str, Any]:
        """Dump with camelCase keys and without unset optional values."""
        return self.model_dump(by_alias=True, exclude_none=True, **kwargs)


class ProcessProperties(ApiModel):
    parent_process_type_id: str | None = None
    process_class: str | None = Field(default=None, alias="class")
    is_default: bool | None = None
    is_enabled: bool | None = None
    version: str | None = None


class ProcessModel(ApiModel):
    """Process identity and derivation information."""

    name: str
    reference_name: str | None = None
    type_id: str | None = None
    description: str | None = None
    customization_type: str | None = None
    properties: ProcessProperties | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_process_info(cls, data: Any) -> Any:
        # ProcessInfo keeps parentProcessTypeId and the flags at top level
        if not isinstance(data, dict) or data.get("properties") is not None:
            return data
        if "parentProcessTypeId" not in data and "customizationType" not in data:
            return data
        data = dict(data)
        properties = {
            "parentProcessTypeId": data.pop("parentProcessTypeId", None),
            "class": class_from_customization(data.get("customizationType")),
            "isDefault": data.pop("isDefault", None),
            "isEnabled": data.pop("isEnabled", None),
        }
        data["properties"] = {key: value for key, value in properties.items() if value is not None}
        return data

    @property
    def process_class(self) -> str | None:
        if self.properties is not None and self.properties.process_class:
            return self.properties.process_class.lower()
        return None

    @property
    def parent_process_type_id(self) -> str | None:
        return self.properties.parent_process_type_id if self.properties else None

    @property
    def is_system(self) -> bool:
        return self.process_class == "system" or (self.customization_type or "").lower() == "system"


class WorkItemTypeModel(ApiModel):
    id: str
    name: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    inherits: str | None = None
    is_disabled: bool | None = None
    work_item_type_class: str | None = Field(default=None, alias="class")

    @model_validator(mode="before")
    @classmethod
    def _from_process_work_item_type(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "id" not in data and "referenceName" in data:
            data["id"] = data.pop("referenceName")
        if "class" not in data and "work_item_type_class" not in data and "customization" in data:
            data["class"] = class_from_customization(data.pop("customization"))
        return data

    @property
    def is_system(self) -> bool:
        return (self.work_item_type_class or "").lower() == "system"


class WorkItemField(ApiModel):
    """Collection scoped field definition.

    Process scoped listings identify a field by ``id``; collection listings
    by ``referenceName``. Either is accepted and both are kept in sync.
    """

    reference_name: str | None = None
    id: str | None = None
    name: str | None = None
    type: str | None = None
    description: str | None = None
    is_identity: bool | None = None
    is_picklist: bool | None = None
    picklist_id: str | None = None

    @model_validator(mode="after")
    def _fill_reference_name(self) -> "WorkItemField":
        if self.reference_name is None and self.id is not None:
            self.reference_name = self.id
        return self


class PickListReference(ApiModel):
    id: str
    name: str | None = None
    is_suggested: bool | None = None
    type: str | None = None
    url: str | None = None


class PickListItem(ApiModel):
    id: str | None = None
    value: str


class PickList(ApiModel):
    id: str | None = None
    name: str | None = None
    type: str | None = None
    url: str | None = None
    is_suggested: bool | None = None
    items: list[PickListItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> Any:
        # Newer API versions return bare strings instead of {id, value} objects.
        if isinstance(value, list):
            return [{"value": item} if isinstance(item, str) else item for item in value]
        return value

    def item_values(self) -> list[str]:
        return [item.value for item in self.items]


class WorkItemTypeFieldModel(ApiModel):
    """Usage of a field by one work item type."""

    reference_name: str
    name: str | None = None
    type: str | None = None
    default_value: Any = None
    required: bool | None = None
    read_only: bool | None = None
    allow_groups: bool | None = None
    pick_list: PickListReference | None = None
    url: str | None = None

    @property
    def is_identity(self) -> bool:
        return (self.type or "").lower() == "identity"


class WorkItemTypeFields(ApiModel):
    work_item_type_ref_name: str
    fields: list[WorkItemTypeFieldModel] = Field(default_factory=list)


class WitFieldPicklist(ApiModel):
    workitemtype_ref_name: str
    field_ref_name: str
    picklist: PickList


class Control(ApiModel):
    id: str
    label: str | None = None
    control_type: str | None = None
    read_only: bool | None = None
    visible: bool | None = None
    watermark: str | None = None
    metadata: str | None = None
    height: int | None = None
    order: int | None = None
    inherited: bool | None = None
    overridden: bool | None = None
    is_contribution: bool | None = None
    contribution: dict[str, Any] | None = None


class Group(ApiModel):
    id: str | None = None
    label: str | None = None
    visible: bool | None = None
    height: int | None = None
    order: int | None = None
    inherited: bool | None = None
    overridden: bool | None = None
    is_contribution: bool | None = None
    contribution: dict[str, Any] | None = None
    controls: list[Control] = Field(default_factory=list)

    @property
    def has_html_control(self) -> bool:
        return bool(self.controls) and self.controls[0].control_type == HTML_CONTROL_TYPE


class Section(ApiModel):
    id: str
    overridden: bool | None = None
    groups: list[Group] = Field(default_factory=list)


class Page(ApiModel):
    id: str | None = None
    label: str | None = None
    page_type: str | None = None
    locked: bool | None = None
    visible: bool | None = None
    order: int | None = None
    inherited: bool | None = None
    overridden: bool | None = None
    is_contribution: bool | None = None
    contribution: dict[str, Any] | None = None
    sections: list[Section] = Field(default_factory=list)

    @property
    def is_custom(self) -> bool:
        return (self.page_type or "").lower() == "custom"


class FormLayout(ApiModel):
    pages: list[Page] = Field(default_factory=list)
    system_controls: list[Control] | None = None
    extensions: list[dict[str, Any]] | None = None


class WitLayout(ApiModel):
    work_item_type_ref_name: str
    layout: FormLayout


class WorkItemState(ApiModel):
    id: str | None = None
    name: str
    color: str | None = None
    state_category: str | None = None
    hidden: bool | None = None
    order: int | None = None
    customization_type: str | None = None
    url: str | None = None


class WitStates(ApiModel):
    work_item_type_ref_name: str
    states: list[WorkItemState] = Field(default_factory=list)


class ProcessRule(ApiModel):
    id: str | None = None
    name: str | None = None
    conditions: list[dict[str, Any]] | None = None
    actions: list[dict[str, Any]] | None = None
    is_disabled: bool | None = None
    customization_type: str | None = None
    url: str | None = None

    @property
    def is_system(self) -> bool:
        return (self.customization_type or "").lower() == "system"


class WitRules(ApiModel):
    work_item_type_ref_name: str
    rules: list[ProcessRule] = Field(default_factory=list)


class BehaviorReference(ApiModel):
    id: str | None = None
    url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_behavior_ref_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and "id" not in data and "behaviorRefName" in data:
            data = dict(data)
            data["id"] = data.pop("behaviorRefName")
        return data


class Behavior(ApiModel):
    """Collection scoped behavior definition."""

    id: str | None = None
    reference_name: str | None = None
    name: str | None = None
    color: str | None = None
    description: str | None = None
    inherits: BehaviorReference | None = None
    rank: int | None = None
    abstract: bool | None = None
    overridden: bool | None = None
    customization_type: str | None = None
    url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_process_behavior(cls, data: Any) -> Any:
        if isinstance(data, dict) and "customization" in data and not {"customizationType", "customization_type"} & data.keys():
            data = dict(data)
            data["customizationType"] = data.pop("customization")
        return data

    @property
    def behavior_id(self) -> str | None:
        return self.id or self.reference_name

    @property
    def parent_id(self) -> str | None:
        return self.inherits.id if self.inherits is not None else None


class WorkItemTypeBehavior(ApiModel):
    behavior: BehaviorReference
    is_default: bool | None = None
    is_legacy_default: bool | None = None
    url: str | None = None


class WitBehaviorsInfo(ApiModel):
    ref_name: str
    work_item_type_class: str | None = None

    @property
    def is_custom(self) -> bool:
        return (self.work_item_type_class or "").lower() == "custom"


class WitBehaviors(ApiModel):
    work_item_type: WitBehaviorsInfo
    behaviors: list[WorkItemTypeBehavior] = Field(default_factory=list)


class TargetAccountInformation(ApiModel):
    """Destination snapshot computed by validation and read by replay."""

    collection_fields: list[WorkItemField] | None = None
    field_ref_name_to_picklist_id: dict[str, str] | None = None


class ProcessPayload(ApiModel):
    """The unit of transfer between export and import."""

    process: ProcessModel
    work_item_types: list[WorkItemTypeModel] = Field(default_factory=list)
    fields: list[WorkItemField] = Field(default_factory=list)
    work_item_type_fields: list[WorkItemTypeFields] = Field(default_factory=list)
    wit_field_picklists: list[WitFieldPicklist] = Field(default_factory=list)
    layouts: list[WitLayout] = Field(default_factory=list)
    behaviors: list[Behavior] = Field(default_factory=list)
    work_item_type_behaviors: list[WitBehaviors] = Field(default_factory=list)
    states: list[WitStates] = Field(default_factory=list)
    rules: list[WitRules] = Field(default_factory=list)
    target_account_information: TargetAccountInformation | None = None

    def picklist_field_ref_names(self) -> set[str]:
        return {entry.field_ref_name for entry in self.wit_field_picklists}
