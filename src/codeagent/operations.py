"""File operations proposed by the model, and their structural validation.

Model output is untrusted: every raw operation is checked against the closed
set of operation models before anything touches the filesystem.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from .types import InvalidOperation


class CreateOperation(BaseModel):
    """Write a whole file, replacing any existing content."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["create"] = "create"
    file: StrictStr = Field(min_length=1)
    content: StrictStr


class EditOperation(BaseModel):
    """Replace every occurrence of an exact text fragment in an existing file."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["edit"] = "edit"
    file: StrictStr
    find: StrictStr
    replace: StrictStr


Operation = Union[CreateOperation, EditOperation]

OPERATION_TYPES: dict[str, type[CreateOperation] | type[EditOperation]] = {
    "create": CreateOperation,
    "edit": EditOperation,
}


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err["loc"]) or "operation"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_operation(raw: Any, index: int = 0) -> Operation | InvalidOperation:
    """
    Validate one raw operation.

    Args:
        raw: Decoded JSON value from the model response
        index: Position in the batch, carried into the error

    Returns:
        A CreateOperation or EditOperation, or InvalidOperation describing
        why the value was rejected
    """
    if isinstance(raw, (CreateOperation, EditOperation)):
        return raw
    if not isinstance(raw, dict):
        return InvalidOperation(index, "unknown operation type")

    tag = raw.get("type")
    model = OPERATION_TYPES.get(tag) if isinstance(tag, str) else None
    if model is None:
        return InvalidOperation(index, "unknown operation type")

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        return InvalidOperation(index, f"{tag} operation: {_describe(e)}")


def validate_operations(
    raw_operations: list[Any],
) -> tuple[list[Operation], list[InvalidOperation]]:
    valid: list[Operation] = []
    invalid: list[InvalidOperation] = []
    for i, raw in enumerate(raw_operations):
        result = validate_operation(raw, i)
        if isinstance(result, InvalidOperation):
            invalid.append(result)
        else:
            valid.append(result)
    return valid, invalid
