"""Schema Package - JSON Schema Loading and Parsing.

This package provides centralized loading of the JSON schemas used to
validate the loosely typed documents Storyblok sends us, plus a parse()
helper that turns validation into a discriminated ParseResult.

Available Schemas:
    WEBHOOK_PAYLOAD_SCHEMA: Storyblok webhook body
        Requires non-empty action, story_id and full_slug.
    STORIES_RESPONSE_SCHEMA: Storyblok CDN API stories response
        Requires a "stories" array; individual stories stay loosely typed.

Usage Patterns:
    from schema import WEBHOOK_PAYLOAD_SCHEMA, parse
    result = parse(body, WEBHOOK_PAYLOAD_SCHEMA)
    if not result.ok:
        return jsonify({"details": str(result.error)}), 400
"""
from .schema import (
    WEBHOOK_PAYLOAD_SCHEMA,
    STORIES_RESPONSE_SCHEMA,
    ParseError,
    ParseResult,
    parse,
)

__all__ = [
    "WEBHOOK_PAYLOAD_SCHEMA",
    "STORIES_RESPONSE_SCHEMA",
    "ParseError",
    "ParseResult",
    "parse",
]
