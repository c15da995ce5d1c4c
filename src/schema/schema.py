"""
Centralized JSON Schema Loading and Parsing Module.

This module loads the JSON schema files that describe the two loosely typed
documents the service receives from Storyblok, and exposes a parse() helper
that validates an instance and returns a discriminated ParseResult instead of
raising.

Schemas:
    WEBHOOK_PAYLOAD_SCHEMA: Storyblok webhook body (action, story_id, full_slug)
    STORIES_RESPONSE_SCHEMA: Storyblok CDN API response ({"stories": [...]})

Design Principles:
    1. Load Once: Schemas are loaded at module import time, not on every use
    2. Fail Fast: Missing or invalid schemas cause immediate import failure
    3. No Probing: Callers branch on ParseResult.ok instead of checking fields

File Location:
    Schemas are expected to be in the same directory as this module
    (src/schema/). The path is resolved using __file__ to ensure
    it works regardless of the current working directory.
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

# Locate schema directory
SCHEMA_DIR = Path(__file__).parent


def _load_schema(schema_filename: str) -> Dict[str, Any]:
    """
    Load a JSON schema file from the schema directory.

    Args:
        schema_filename: Name of the JSON schema file (e.g., "webhook_payload_schema.json")

    Returns:
        Parsed JSON schema as a dictionary, ready for use with jsonschema library

    Raises:
        FileNotFoundError: If the schema file doesn't exist at the expected location.
        json.JSONDecodeError: If the schema file exists but contains invalid JSON.
    """
    schema_path = SCHEMA_DIR / schema_filename

    # Check if file exists before attempting to open
    # This provides a more helpful error message than letting open() fail
    if not schema_path.exists():
        raise FileNotFoundError(
            f"Schema file not found: {schema_path}. "
            f"Expected location: {SCHEMA_DIR}"
        )

    try:
        with open(schema_path, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise json.JSONDecodeError(
            f"Invalid JSON in schema file {schema_filename}: {e.msg}",
            e.doc,
            e.pos
        ) from e


WEBHOOK_PAYLOAD_SCHEMA = _load_schema("webhook_payload_schema.json")
STORIES_RESPONSE_SCHEMA = _load_schema("stories_response_schema.json")


@dataclass(frozen=True)
class ParseError:
    """Why an instance failed schema validation.

    Attributes:
        message: Constraint violated, as reported by jsonschema
        path: Dotted JSON path to the failing field ("" for the root object)
    """
    message: str
    path: str = ""

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} at path: {self.path}"
        return self.message


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parse(): exactly one of value or error is set."""
    value: Optional[Any] = None
    error: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse(instance: Any, schema: Dict[str, Any]) -> ParseResult:
    """Validate instance against schema and return a ParseResult.

    When several constraints fail, the error reported is jsonschema's
    best_match, so a missing required field wins over a type mismatch
    deeper in the document.

    Example:
        >>> result = parse({"action": "published"}, WEBHOOK_PAYLOAD_SCHEMA)
        >>> result.ok
        False
        >>> str(result.error)
        "'story_id' is a required property"
    """
    # Draft7Validator reports the path to the failing field and the violated constraint
    validator = Draft7Validator(schema)
    first = best_match(validator.iter_errors(instance))
    if first is None:
        return ParseResult(value=instance)

    path_str = ".".join(str(p) for p in first.path)
    return ParseResult(error=ParseError(message=first.message, path=path_str))

