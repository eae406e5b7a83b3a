"""Output schema contracts passed to the oracle alongside each prompt.

The oracle is asked to honour a JSON schema, but its reply is still validated
here: structured-output modes drift, and truncated generations produce JSON
that parses but is missing fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import OracleResponseError


class FieldType(str, Enum):
    """Primitive shapes the oracle may be asked to return."""

    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    STRING_ARRAY = "string_array"
    OBJECT = "object"


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: FieldType
    description: str = ""
    fields: Tuple["SchemaField", ...] = field(default_factory=tuple)

    def to_json_schema(self) -> Dict[str, Any]:
        if self.type is FieldType.STRING_ARRAY:
            node: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}
        elif self.type is FieldType.OBJECT:
            node = {
                "type": "object",
                "properties": {sub.name: sub.to_json_schema() for sub in self.fields},
                "required": [sub.name for sub in self.fields],
                "additionalProperties": False,
            }
        else:
            node = {"type": self.type.value}
        if self.description:
            node["description"] = self.description
        return node


def _matches(value: Any, spec: SchemaField) -> bool:
    if spec.type is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if spec.type is FieldType.NUMBER:
        # bool is an int subclass; reject it explicitly. Non-finite values pass
        # through and are clamped by the caller.
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if spec.type is FieldType.STRING:
        return isinstance(value, str)
    if spec.type is FieldType.STRING_ARRAY:
        return isinstance(value, list) and all(isinstance(item, str) for item in value)
    if spec.type is FieldType.OBJECT:
        return isinstance(value, dict)
    return False


@dataclass(frozen=True)
class OutputSchema:
    """Named set of fields the oracle must return.

    ``required`` defaults to every declared field.
    """

    name: str
    fields: Tuple[SchemaField, ...]
    required: Optional[Tuple[str, ...]] = None

    @property
    def required_fields(self) -> Tuple[str, ...]:
        if self.required is None:
            return tuple(spec.name for spec in self.fields)
        return self.required

    def to_json_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {spec.name: spec.to_json_schema() for spec in self.fields},
            "required": list(self.required_fields),
            "additionalProperties": False,
        }

    def validate(self, payload: Any) -> Dict[str, Any]:
        """Return *payload* when it satisfies the schema, else raise."""

        return _validate_object(payload, self.fields, self.required_fields, self.name)


def _validate_object(
    payload: Any,
    fields: Tuple[SchemaField, ...],
    required: Tuple[str, ...],
    path: str,
) -> Dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise OracleResponseError(
            f"{path}: expected a JSON object, got {type(payload).__name__}"
        )

    missing = [name for name in required if name not in payload]
    if missing:
        raise OracleResponseError(
            f"{path}: missing required field(s): {', '.join(missing)}"
        )

    validated: Dict[str, Any] = dict(payload)
    for spec in fields:
        if spec.name not in payload:
            continue
        value = payload[spec.name]
        if not _matches(value, spec):
            raise OracleResponseError(
                f"{path}.{spec.name}: expected {spec.type.value}, "
                f"got {type(value).__name__}"
            )
        if spec.type is FieldType.OBJECT and spec.fields:
            validated[spec.name] = _validate_object(
                value,
                spec.fields,
                tuple(sub.name for sub in spec.fields),
                f"{path}.{spec.name}",
            )
    return validated
