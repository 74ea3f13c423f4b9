"""Tool definition and handler output types."""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class ToolOutput:
    """What a handler hands back to the dispatcher.

    ``texts`` become the envelope's text segments; ``structured`` becomes its
    structured payload.
    """

    texts: tuple[Any, ...]
    structured: dict[str, Any] | None = None

    @classmethod
    def text(cls, text: str, structured: dict[str, Any] | None = None) -> "ToolOutput":
        return cls(texts=(text,), structured=structured)

    @classmethod
    def json(cls, structured: dict[str, Any]) -> "ToolOutput":
        """Pretty-printed structured payload as the only text segment."""
        return cls(texts=(json.dumps(structured, indent=2, default=str),), structured=structured)


@dataclass(frozen=True)
class ToolDefinition:
    """A named tool: its argument model, result model and handler."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[[Any], ToolOutput]
    output_model: type[BaseModel] | None = None

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)

    @property
    def output_schema(self) -> dict[str, Any] | None:
        if self.output_model is None:
            return None
        return self.output_model.model_json_schema(by_alias=True, mode="serialization")
