from abc import ABC, abstractmethod
from typing import Any

from ..types import ToolContract, ToolResult

# JSON schema type name -> accepted python types
_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
}


def _matches_type(value: Any, expected: str | list[str]) -> bool:
    if isinstance(expected, list):
        return any(_matches_type(value, option) for option in expected)
    if expected == "null":
        return value is None
    accepted = _JSON_TYPES.get(expected)
    if accepted is None:
        return True
    # bool is an int subclass but never a JSON number
    if isinstance(value, bool) and expected in ("number", "integer"):
        return False
    return isinstance(value, accepted)


def validate_arguments(contract: ToolContract, args: dict[str, Any]) -> list[str]:
    """Check arguments against a contract's parameter schema.

    Only the basics are checked: required keys, JSON types of declared
    properties and enum membership. Undeclared extra keys are allowed.

    Args:
        contract: The tool's declared contract.
        args: Parsed arguments from the model.

    Returns:
        A list of human-readable problems; empty when the arguments are valid.
    """
    errors = []
    for key in contract.required:
        if key not in args or args[key] is None:
            errors.append(f"missing required argument '{key}'")

    for key, value in args.items():
        schema = contract.properties.get(key)
        if not schema or value is None:
            continue
        expected = schema.get("type")
        if expected and not _matches_type(value, expected):
            errors.append(f"argument '{key}' should be of type {expected}")
        elif "enum" in schema and value not in schema["enum"]:
            errors.append(f"argument '{key}' must be one of {schema['enum']}")
    return errors


class BaseTool(ABC):
    """Abstract base class for all tools.

    A tool exposes a declarative contract (name, description, JSON-schema
    parameters) and an async ``execute`` that returns a ToolResult.
    Failures a tool can anticipate are returned as error results; anything
    it raises is captured by the registry.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Return the tool description."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """Return the JSON schema for tool parameters."""
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Execute the tool with the given arguments."""
        pass

    @property
    def contract(self) -> ToolContract:
        return ToolContract(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    def validate_args(self, args: dict[str, Any]) -> list[str]:
        return validate_arguments(self.contract, args)

    def to_schema(self) -> dict[str, Any]:
        """Return the tool schema for LLM function calling."""
        return self.contract.to_schema()
