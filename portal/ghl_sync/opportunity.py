"""
Inbound GHL Events

Validated representations of GHL webhook bodies. GHL sends the same data
in several shapes (nested under "opportunity" or flattened at the top
level, custom fields as a dict or as a list of {id, key, field_value}),
so everything is parsed once here and the rest of the pipeline works on
OpportunityEvent / ContactEvent.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .field_mapping import PROPERTY_ADDRESS_KEYS

logger = logging.getLogger(__name__)

NAMESPACES = ("opportunity.", "contact.")

# Top-level keys that are structure, not opportunity attributes
_CONTAINER_KEYS = {"opportunity", "customFields", "custom_fields", "customData", "contact"}


class InvalidPayloadError(ValueError):
    """Raised when a webhook body cannot be read as a GHL event."""


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _custom_field_items(raw: Any):
    """Yield (key, value) pairs from a dict or GHL list of custom fields."""
    if isinstance(raw, dict):
        yield from raw.items()
    elif isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            key = _first(item, "key", "fieldKey", "id")
            if key is None:
                continue
            value = item.get("field_value", item.get("fieldValue", item.get("value")))
            yield str(key), value
    elif raw is not None:
        raise InvalidPayloadError("customFields must be an object or a list")


def _collect_custom_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    for container in ("customFields", "custom_fields", "customData"):
        for key, value in _custom_field_items(data.get(container)):
            fields.setdefault(key, value)

    contact = data.get("contact")
    if isinstance(contact, dict):
        for key, value in _custom_field_items(contact.get("customFields")):
            if not key.startswith(NAMESPACES):
                key = f"contact.{key}"
            fields.setdefault(key, value)

    # Flattened workflow webhooks put namespaced keys at the top level
    for key, value in data.items():
        if isinstance(key, str) and key.startswith(NAMESPACES):
            fields.setdefault(key, value)

    return fields


class OpportunityEvent(BaseModel):
    """A GHL opportunity change, as received by the webhook."""

    model_config = ConfigDict(frozen=True)

    opportunity_id: Optional[str] = None
    name: Optional[str] = None
    stage_name: Optional[str] = None
    pipeline_id: Optional[str] = None
    pipeline_stage_id: Optional[str] = None
    contact_id: Optional[str] = None
    custom_fields: Dict[str, Any] = Field(default_factory=dict)
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "opportunity_id", "name", "stage_name", "pipeline_id", "pipeline_stage_id", "contact_id",
        mode="before",
    )
    @classmethod
    def _as_optional_str(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @classmethod
    def from_payload(cls, body: Any) -> "OpportunityEvent":
        """
        Parse a webhook body into an OpportunityEvent.

        Args:
            body: Decoded JSON body, either {"opportunity": {...}} or the
                opportunity fields flattened at the top level

        Returns:
            Parsed event

        Raises:
            InvalidPayloadError: if the body is not an object, or carries no
                id, name or custom fields to work with
        """
        if not isinstance(body, dict) or not body:
            raise InvalidPayloadError("No opportunity data received")

        data = body.get("opportunity", body)
        if not isinstance(data, dict) or not data:
            raise InvalidPayloadError("Invalid opportunity data")

        contact = data.get("contact") if isinstance(data.get("contact"), dict) else {}
        event = cls(
            opportunity_id=_first(data, "id", "opportunity_id", "opportunityId"),
            name=_first(data, "name", "opportunity_name"),
            # "pipleline_stage" is GHL's spelling
            stage_name=_first(data, "pipleline_stage", "pipeline_stage", "stage_name"),
            pipeline_id=_first(data, "pipelineId", "pipeline_id"),
            pipeline_stage_id=_first(data, "pipelineStageId", "pipeline_stage_id"),
            contact_id=_first(data, "contactId", "contact_id") or _first(contact, "id"),
            custom_fields=_collect_custom_fields(data),
            attributes={
                key: value for key, value in data.items()
                if key not in _CONTAINER_KEYS and not str(key).startswith(NAMESPACES)
            },
        )

        if not (event.opportunity_id or event.name or event.custom_fields):
            raise InvalidPayloadError("Invalid opportunity data")
        return event

    def property_address(self) -> Optional[str]:
        """Address the event claims for the property, if any."""
        value = _first(self.custom_fields, *PROPERTY_ADDRESS_KEYS)
        if value is None:
            value = _first(self.attributes, "propertyAddress", "property_address")
        return str(value) if value is not None else None


class ContactEvent(BaseModel):
    """A GHL contact change carrying contact-level custom fields."""

    model_config = ConfigDict(frozen=True)

    contact_id: str
    custom_fields: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("contact_id", mode="before")
    @classmethod
    def _as_str(cls, value: Any) -> str:
        return str(value).strip() if value is not None else ""

    @classmethod
    def from_payload(cls, body: Any) -> "ContactEvent":
        if not isinstance(body, dict):
            raise InvalidPayloadError("Invalid contact data")

        data = body.get("contact", body)
        if not isinstance(data, dict):
            raise InvalidPayloadError("Invalid contact data")

        contact_id = _first(data, "id", "contact_id", "contactId")
        if contact_id is None:
            raise InvalidPayloadError("Invalid contact data")

        fields: Dict[str, Any] = {}
        for container in ("customFields", "custom_fields", "customData"):
            for key, value in _custom_field_items(data.get(container)):
                if not key.startswith(NAMESPACES):
                    key = f"contact.{key}"
                fields.setdefault(key, value)
        for key, value in data.items():
            if isinstance(key, str) and key.startswith("contact."):
                fields.setdefault(key, value)

        return cls(contact_id=contact_id, custom_fields=fields)
