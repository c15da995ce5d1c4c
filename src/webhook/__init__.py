"""Storyblok Webhook Receiver Package.

This package provides the Flask application that serves the cached blog
pages and receives Storyblok webhooks to revalidate them on demand.

Key Components:
    create_app: Flask application factory
    WebhookPayload: Validated Storyblok story event
    parse_webhook_payload: Body -> ParseResult[WebhookPayload]
    require_webhook_payload: Body -> WebhookPayload, raising WebhookPayloadError

Endpoints:
    POST /api/storyblok-webhook: Public webhook, relays to /api/revalidate
    POST /api/revalidate: Secret-protected revalidation of affected pages
    GET /blog, GET /blog/<key>: Cached blog pages
    GET /health: Health check endpoint for monitoring

Usage:
    Start the server:
        $ poetry run isrblog

    Test with curl:
        $ curl -X POST "http://localhost:5000/api/revalidate?secret=$REVALIDATION_SECRET" \
               -H "Content-Type: application/json" \
               -d '{"action": "published", "story_id": 1, "full_slug": "blog/hello"}'
"""
from .webhook import create_app, check_secret, sanitize_error_message
from .payload import WebhookPayload, parse_webhook_payload, require_webhook_payload

__all__ = [
    "create_app",
    "check_secret",
    "sanitize_error_message",
    "WebhookPayload",
    "parse_webhook_payload",
    "require_webhook_payload",
]
