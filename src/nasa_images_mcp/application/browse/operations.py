"""
Browse operations as a tagged union.

Each variant pairs a tool name with its own argument model; pydantic picks
the variant by ``name`` and validates the arguments before anything runs.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from nasa_images_mcp.shared.exceptions import InvalidParameterError, InvalidQueryError

SEARCH_TOOL = "search_nasa_images"
NEXT_TOOL = "get_next_image"
CURRENT_TOOL = "get_current_image"


class SearchArguments(BaseModel):
    query: StrictStr = Field(
        min_length=1,
        description='Search query (e.g., "apollo 11", "mars rover")',
    )


class NoArguments(BaseModel):
    pass


class SearchImages(BaseModel):
    """Replace the session's results with one page for ``query``."""

    model_config = ConfigDict(frozen=True)

    name: Literal["search_nasa_images"]
    arguments: SearchArguments

    @property
    def query(self) -> str:
        return self.arguments.query


class NextImage(BaseModel):
    """Advance the cursor to the next image, wrapping around."""

    model_config = ConfigDict(frozen=True)

    name: Literal["get_next_image"]
    arguments: NoArguments = Field(default_factory=NoArguments)


class CurrentImage(BaseModel):
    """Describe the image under the cursor."""

    model_config = ConfigDict(frozen=True)

    name: Literal["get_current_image"]
    arguments: NoArguments = Field(default_factory=NoArguments)


Operation = Annotated[SearchImages | NextImage | CurrentImage, Field(discriminator="name")]

_operation_adapter: TypeAdapter[SearchImages | NextImage | CurrentImage] = TypeAdapter(Operation)

OPERATION_NAMES = (SEARCH_TOOL, NEXT_TOOL, CURRENT_TOOL)


def parse_operation(params: Any) -> SearchImages | NextImage | CurrentImage:
    """
    Validate ``tools/call`` params into an operation.

    Args:
        params: ``{"name": <tool>, "arguments": {...}}``

    Raises:
        InvalidParameterError: Unknown tool or mistyped arguments
        InvalidQueryError: Missing or blank search query
    """
    if not isinstance(params, dict):
        raise InvalidParameterError("params", params, "an object with 'name' and 'arguments'")

    name = params.get("name")
    if name not in OPERATION_NAMES:
        raise InvalidParameterError("name", name, f"one of {', '.join(OPERATION_NAMES)}")

    arguments = params.get("arguments")
    if arguments is None:
        arguments = {}

    try:
        operation = _operation_adapter.validate_python({"name": name, "arguments": arguments})
    except PydanticValidationError as e:
        first = e.errors()[0]
        loc = first.get("loc", ())
        if loc and loc[-1] == "query":
            raise InvalidQueryError(first.get("input"), reason="query must be a non-empty string") from e
        field_name = ".".join(str(part) for part in loc[1:]) or "arguments"
        expected = f"valid arguments ({first.get('msg', 'invalid')})"
        raise InvalidParameterError(field_name, first.get("input"), expected, tool_name=name) from e

    if isinstance(operation, SearchImages) and not operation.query.strip():
        raise InvalidQueryError(operation.query)
    return operation


def arguments_schema(model: type[BaseModel]) -> dict[str, Any]:
    """JSON schema advertised for a tool's arguments."""
    schema = model.model_json_schema()
    schema.pop("title", None)
    schema.setdefault("properties", {})
    return schema
