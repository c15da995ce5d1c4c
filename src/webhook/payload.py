"""
Storyblok webhook payload parsing.

Storyblok sends story events as a flat JSON object:

    {
      "text": "The user test@example.com published the Story Hello (blog/hello)",
      "action": "published",
      "space_id": 12345,
      "story_id": 67890,
      "full_slug": "blog/hello"
    }

parse_webhook_payload() validates that shape against the webhook payload
JSON schema and returns a ParseResult whose value is a WebhookPayload.
require_webhook_payload() is the raising variant used by the endpoints.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from errors import WebhookPayloadError
from schema import WEBHOOK_PAYLOAD_SCHEMA, ParseError, ParseResult, parse


@dataclass(frozen=True)
class WebhookPayload:
    """A validated Storyblok story event."""
    action: str
    story_id: Union[int, str]
    full_slug: str
    text: Optional[str] = None
    space_id: Optional[Union[int, str]] = None

    def summary(self) -> Dict[str, Any]:
        """The fields echoed back in webhook responses."""
        return {
            "action": self.action,
            "story_id": self.story_id,
            "full_slug": self.full_slug,
        }


def parse_webhook_payload(body: Any) -> ParseResult:
    """Validate a decoded webhook body.

    Args:
        body: Decoded JSON request body (anything; non-objects are rejected)

    Returns:
        ParseResult with a WebhookPayload value, or the first schema error
    """
    if not isinstance(body, dict):
        return ParseResult(error=ParseError(message="Request body must be a JSON object"))

    result = parse(body, WEBHOOK_PAYLOAD_SCHEMA)
    if not result.ok:
        return result

    return ParseResult(value=WebhookPayload(
        action=body["action"],
        story_id=body["story_id"],
        full_slug=body["full_slug"],
        text=body.get("text"),
        space_id=body.get("space_id"),
    ))


def require_webhook_payload(body: Any) -> WebhookPayload:
    """Validate a decoded webhook body, raising on failure.

    Raises:
        WebhookPayloadError: If the body is not an object or misses a required field
    """
    result = parse_webhook_payload(body)
    if not result.ok:
        raise WebhookPayloadError(str(result.error), path=result.error.path)
    return result.value
