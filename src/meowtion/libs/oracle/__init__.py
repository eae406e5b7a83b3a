"""Schema-constrained access to the external multimodal oracle."""

from .client import (  # noqa: F401
    ImagePart,
    OpenAICompatibleOracle,
    Oracle,
    Part,
    TextPart,
    parse_structured_reply,
)
from .errors import OracleError, OracleResponseError, OracleUnavailableError  # noqa: F401
from .schema import FieldType, OutputSchema, SchemaField  # noqa: F401

__all__ = [
    "ImagePart",
    "OpenAICompatibleOracle",
    "Oracle",
    "Part",
    "TextPart",
    "parse_structured_reply",
    "OracleError",
    "OracleResponseError",
    "OracleUnavailableError",
    "FieldType",
    "OutputSchema",
    "SchemaField",
]
