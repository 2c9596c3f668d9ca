"""
Record schemas - schemaless entity payloads returned by the CRM service.

A Record is the in-process view of one remote row: its entity logical name,
its id and an attribute bag. Attribute values are limited to a small set of
kinds (str, int, bool, EntityReference or None) and are read through typed
getters rather than attribute reflection.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pdtemplate.errors import AttributeKindError


@dataclass(frozen=True)
class EntityReference:
    """
    Pointer to a remote record.

    Attributes:
        logical_name: Entity logical name (e.g., "connector")
        id: Record id (GUID string)
    """
    logical_name: str
    id: str

    def to_dict(self) -> dict[str, str]:
        return {"logical_name": self.logical_name, "id": self.id}


AttributeValue = Union[str, int, bool, EntityReference, None]

_ALLOWED_KINDS = (str, int, bool, EntityReference)


@dataclass
class Record:
    """
    A remote record and its attribute bag.

    Attributes:
        logical_name: Entity logical name (e.g., "workflow")
        id: Record id (GUID string)
        attributes: Attribute name -> value
    """
    logical_name: str
    id: str
    attributes: dict[str, AttributeValue] = field(default_factory=dict)

    def __post_init__(self):
        for name, value in self.attributes.items():
            _check_kind(name, value)

    def __contains__(self, name: str) -> bool:
        return name in self.attributes

    def __setitem__(self, name: str, value: AttributeValue) -> None:
        _check_kind(name, value)
        self.attributes[name] = value

    def get_str(self, name: str) -> Optional[str]:
        """Return a string attribute, None when absent."""
        return self._get(name, str)

    def get_int(self, name: str) -> Optional[int]:
        """Return an integer attribute, None when absent. Booleans are rejected."""
        value = self.attributes.get(name)
        if isinstance(value, bool):
            raise AttributeKindError(
                f"{self.logical_name}.{name} is bool, expected int"
            )
        return self._get(name, int)

    def get_bool(self, name: str) -> Optional[bool]:
        """Return a boolean attribute, None when absent."""
        return self._get(name, bool)

    def get_reference(self, name: str) -> Optional[EntityReference]:
        """Return a lookup attribute, None when absent."""
        return self._get(name, EntityReference)

    def to_reference(self) -> EntityReference:
        return EntityReference(self.logical_name, self.id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "logical_name": self.logical_name,
            "id": self.id,
            "attributes": {
                k: v.to_dict() if isinstance(v, EntityReference) else v
                for k, v in self.attributes.items()
            },
        }

    def _get(self, name: str, kind: type) -> Any:
        value = self.attributes.get(name)
        if value is None:
            return None
        if not isinstance(value, kind):
            raise AttributeKindError(
                f"{self.logical_name}.{name} is {type(value).__name__}, expected {kind.__name__}"
            )
        return value


def _check_kind(name: str, value: Any) -> None:
    if value is not None and not isinstance(value, _ALLOWED_KINDS):
        raise AttributeKindError(
            f"Unsupported value kind for attribute '{name}': {type(value).__name__}"
        )
