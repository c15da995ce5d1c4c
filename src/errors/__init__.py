"""Error Taxonomy for the ISR Blog.

Every failure the service can name is a subclass of ISRBlogError so callers
can catch the whole family at a request boundary while still telling the
kinds apart:

    ConfigurationError      missing access token or revalidation secret
    AuthorizationError      webhook secret mismatch
    PayloadValidationError  malformed webhook body or CMS response
        WebhookPayloadError
        StoryblokResponseError
    UpstreamError           Storyblok API request failed
        StoryblokAPIError
    RevalidationError       a single cached page could not be regenerated

A partially failed revalidation batch is not an exception; see
revalidation.revalidator.RevalidationSummary.partial_failure.
"""
from typing import Optional


class ISRBlogError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ISRBlogError):
    """Raised when a required credential or secret is not configured."""


class AuthorizationError(ISRBlogError):
    """Raised when a webhook request carries the wrong shared secret."""


class PayloadValidationError(ISRBlogError):
    """Raised when a JSON document does not have the expected shape.

    Attributes:
        path: Dotted JSON path of the offending field (empty for the root)
    """

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class WebhookPayloadError(PayloadValidationError):
    """Raised when a Storyblok webhook body is missing required fields."""


class StoryblokResponseError(PayloadValidationError):
    """Raised when a Storyblok API response lacks the stories collection."""


class UpstreamError(ISRBlogError):
    """Raised when a call to an upstream service fails.

    Attributes:
        status_code: HTTP status returned by the upstream, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StoryblokAPIError(UpstreamError):
    """Raised when the Storyblok Content Delivery API request fails."""


class RevalidationError(ISRBlogError):
    """Raised when a cached page cannot be regenerated."""

    def __init__(self, path: str, message: str):
        super().__init__(f"Failed to revalidate {path}: {message}")
        self.path = path


__all__ = [
    "ISRBlogError",
    "ConfigurationError",
    "AuthorizationError",
    "PayloadValidationError",
    "WebhookPayloadError",
    "StoryblokResponseError",
    "UpstreamError",
    "StoryblokAPIError",
    "RevalidationError",
]
