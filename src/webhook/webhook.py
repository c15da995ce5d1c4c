"""
Storyblok Webhook Receiver and Blog Server - Flask Application.

This module implements the Flask application that serves the cached blog
pages and receives Storyblok webhooks that trigger on-demand revalidation.

Architecture:
    Storyblok -> POST /api/storyblok-webhook (relay, no secret required)
              -> POST /api/revalidate?secret=... (primary, secret required)
              -> Revalidator -> PageCache.revalidate(path) per affected page

    GET /blog and GET /blog/<key> are served from the PageCache, rendering
    on first request and caching indefinitely until revalidated.

Revalidation Endpoint (POST /api/revalidate):
    1. Check the shared secret (query string or body "secret")
    2. Validate the payload against the webhook payload schema
    3. Derive the affected page paths from full_slug
    4. Revalidate all paths concurrently, isolating per-path failures
    5. Return a per-path report with an aggregate successCount

Relay Endpoint (POST /api/storyblok-webhook):
    Public webhook URL. Validates the payload shape, then re-issues the call
    to the revalidation endpoint with the secret attached and relays the
    result, so the secret never appears in the URL configured in Storyblok.
    The target is relay.revalidate_url, or this server's loopback address.
    It is never derived from request headers, which the caller controls.

Logging Strategy:
    - INFO: Webhook reception (action, story_id, full_slug), revalidation summary
    - DEBUG: Full payload dumps
    - WARNING: Rejected requests (bad secret, invalid payload)
    - ERROR: Revalidation failures and unexpected exceptions

Error Handling:
    Returns appropriate HTTP status codes, always with a JSON body:
    - 200: Processed (including no-op for non-blog stories)
    - 400: Payload missing action, story_id or full_slug
    - 401: Wrong or missing secret
    - 405: Method other than POST
    - 500: Missing configuration or unexpected exception

Functions:
    create_app(page_cache, ...): Flask application factory
    check_secret(provided, expected): Constant-time secret check
    sanitize_error_message(error): Strips sensitive details from errors
"""
import hmac
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests
from flask import Flask, request, jsonify, current_app, Response, redirect
from flask_cors import CORS
from werkzeug.exceptions import MethodNotAllowed

from config import load_config, get_timezone, resolve_secret, REVALIDATION_SECRET_ENV
from errors import ISRBlogError, ConfigurationError, AuthorizationError, WebhookPayloadError
from revalidation import PageCache, Revalidator, paths_for_full_slug

from .payload import require_webhook_payload

# Logging is configured in isrblog.py main() - this module uses the configured logger
logger = logging.getLogger(__name__)

REVALIDATE_ENDPOINT = "/api/revalidate"
# Matches the bind port in gunicorn_config.py
DEFAULT_RELAY_REVALIDATE_URL = "http://127.0.0.1:5000" + REVALIDATE_ENDPOINT


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize an error message to prevent information leakage.

    The relay's request URL carries the revalidation secret in its query
    string, and requests includes the URL in its exception messages, so raw
    exception text must never be returned to the caller.

    Args:
        error: The exception to sanitize

    Returns:
        A safe, generic error message
    """
    error_str = str(error).lower()

    # Map known error patterns to safe messages
    if "timeout" in error_str or "timed out" in error_str:
        return "Request timed out"
    if "connection" in error_str or "network" in error_str:
        return "Connection error"
    if "token" in error_str or "credential" in error_str or "auth" in error_str:
        return "Authentication failed"
    if "not found" in error_str or "404" in error_str:
        return "Resource not found"

    # Default generic message
    return "Service temporarily unavailable"


def check_secret(provided: Any, expected: str) -> None:
    """Compare secrets in constant time.

    Raises:
        AuthorizationError: If provided is missing, not a string or different
    """
    if not isinstance(provided, str) or not provided:
        raise AuthorizationError("Missing revalidation secret")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise AuthorizationError("Invalid revalidation secret")


def create_app(page_cache: PageCache, revalidator: Optional[Revalidator] = None,
               config: Optional[Dict[str, Any]] = None,
               revalidation_secret: Optional[str] = None) -> Flask:
    """Factory function to create and configure the Flask application.

    This factory pattern allows dependency injection of the page cache,
    revalidator and config, avoiding module-level state and making the app
    easy to test.

    Args:
        page_cache: PageCache serving the blog pages
        revalidator: Optional Revalidator (if None, one is built around page_cache)
        config: Optional configuration dictionary (if None, will be loaded from config.yml)
        revalidation_secret: Optional shared secret (if None, resolved from
            revalidation.secret, revalidation.secret_file or REVALIDATION_SECRET)

    Returns:
        Configured Flask application instance

    Example:
        >>> app = create_app(page_cache, config={"revalidation": {"secret": "s3cret"}})
        >>> client = app.test_client()
    """
    app = Flask(__name__)

    if config is None:
        config = load_config()

    # Configure CORS to allow requests from the site domain(s)
    cors_config = config.get("cors", {})
    if cors_config.get("enabled", False):
        cors_origins = cors_config.get("origins", [])
        if cors_origins:
            CORS(app, origins=cors_origins)
            logger.info(f"CORS enabled for origins: {cors_origins}")
        else:
            logger.warning("CORS enabled but no origins configured")
    else:
        logger.info("CORS is disabled in configuration")

    revalidation_config = config.get("revalidation", {})
    relay_config = config.get("relay", {})

    if revalidator is None:
        revalidator = Revalidator(page_cache, max_workers=revalidation_config.get("max_workers", 10))

    if revalidation_secret is None:
        revalidation_secret = resolve_secret(revalidation_config, "secret", REVALIDATION_SECRET_ENV)
    if not revalidation_secret:
        logger.warning("REVALIDATION_SECRET is not configured; webhook requests will be refused")

    app.config["PAGE_CACHE"] = page_cache
    app.config["REVALIDATOR"] = revalidator
    app.config["REVALIDATION_SECRET"] = revalidation_secret
    app.config["TIMEZONE"] = get_timezone(config)
    app.config["RELAY_REVALIDATE_URL"] = relay_config.get("revalidate_url") or DEFAULT_RELAY_REVALIDATE_URL
    app.config["RELAY_TIMEOUT"] = relay_config.get("timeout", 30)
    logger.info(f"Relay forwards webhooks to {app.config['RELAY_REVALIDATE_URL']}")

    def _timestamp() -> str:
        return datetime.now(current_app.config["TIMEZONE"]).isoformat()

    def _require_secret() -> str:
        secret = current_app.config["REVALIDATION_SECRET"]
        if not secret:
            raise ConfigurationError("REVALIDATION_SECRET is required but not set")
        return secret

    @app.errorhandler(MethodNotAllowed)
    def method_not_allowed(error):
        """Return JSON instead of Werkzeug's HTML page for wrong methods."""
        logger.warning(f"Rejected {request.method} {request.path}: method not allowed")
        response = jsonify({"message": "Method not allowed"})
        response.status_code = 405
        allowed = error.valid_methods or []
        if allowed:
            response.headers["Allow"] = ", ".join(allowed)
        return response

    @app.route(REVALIDATE_ENDPOINT, methods=["POST"])
    def revalidate():
        """Revalidate the pages affected by a Storyblok story event.

        Request Format:
            POST /api/revalidate?secret=<REVALIDATION_SECRET>
            Content-Type: application/json

            {"action": "published", "story_id": 67890, "full_slug": "blog/hello"}

        Success Response (200):
            {
              "revalidated": true,
              "webhook": {"action": "published", "story_id": 67890, "full_slug": "blog/hello"},
              "paths": ["/blog/hello", "/blog"],
              "results": [{"path": "/blog/hello", "success": true},
                          {"path": "/blog", "success": true}],
              "successCount": "2/2",
              "timestamp": "2026-01-15T10:00:00+00:00"
            }

        No-op Response (200, story outside the blog folder):
            {"message": "No paths to revalidate for this story type",
             "full_slug": "about", "timestamp": "..."}

        Returns:
            tuple: (JSON response, HTTP status code)
        """
        body = request.get_json(silent=True)

        # The secret is checked before the payload so a bad secret is always a 401
        try:
            expected_secret = _require_secret()
        except ConfigurationError as e:
            logger.error(f"Cannot authorize revalidation request: {e}")
            return jsonify({"message": "Revalidation is not configured"}), 500

        provided_secret = request.args.get("secret")
        if not provided_secret and isinstance(body, dict):
            provided_secret = body.get("secret")
        try:
            check_secret(provided_secret, expected_secret)
        except AuthorizationError as e:
            logger.warning(f"Rejected revalidation request: {e}")
            return jsonify({"message": "Invalid token"}), 401

        try:
            payload = require_webhook_payload(body)
        except WebhookPayloadError as e:
            logger.warning(f"Invalid webhook payload: {e}")
            return jsonify({
                "message": "Invalid webhook payload. Required: action, story_id, full_slug",
                "details": str(e)
            }), 400

        try:
            logger.info(
                f"Processing Storyblok webhook: action={payload.action}, "
                f"story_id={payload.story_id}, full_slug='{payload.full_slug}'"
            )
            logger.debug(f"Webhook payload: {json.dumps(body, indent=2, default=str)}")

            paths = paths_for_full_slug(payload.full_slug)
            if not paths:
                logger.info(f"No paths to revalidate for full_slug '{payload.full_slug}'")
                return jsonify({
                    "message": "No paths to revalidate for this story type",
                    "full_slug": payload.full_slug,
                    "timestamp": _timestamp()
                }), 200

            summary = current_app.config["REVALIDATOR"].revalidate_paths(paths)
            if summary.partial_failure:
                logger.warning(f"Partial revalidation for '{payload.full_slug}': {summary.success_ratio} succeeded")

            return jsonify({
                "revalidated": True,
                "webhook": payload.summary(),
                "paths": paths,
                "results": [r.to_dict() for r in summary.results],
                "successCount": summary.success_ratio,
                "timestamp": _timestamp()
            }), 200

        except Exception as e:
            # Unexpected error; cached pages are untouched and keep being served
            logger.error(f"Error processing webhook: {e}", exc_info=True)
            return jsonify({
                "message": "Error processing webhook",
                "error": str(e) or type(e).__name__
            }), 500

    @app.route("/api/storyblok-webhook", methods=["POST"])
    def storyblok_webhook():
        """Public Storyblok webhook that relays to the revalidation endpoint.

        Success Response (200):
            {
              "message": "Webhook processed successfully",
              "webhook": {"action": ..., "story_id": ..., "full_slug": ...},
              "revalidation": { ...revalidation endpoint response... },
              "timestamp": "..."
            }

        Upstream failure: the revalidation endpoint's status code with
            {"message": "Revalidation failed", "error": { ...its response... }}

        Returns:
            tuple: (JSON response, HTTP status code)
        """
        body = request.get_json(silent=True)
        logger.info("Storyblok webhook received")
        logger.debug(f"Storyblok webhook body: {json.dumps(body, indent=2, default=str)}")

        try:
            payload = require_webhook_payload(body)
        except WebhookPayloadError as e:
            logger.warning(f"Invalid webhook data received: {e}")
            return jsonify({"message": "Invalid webhook data", "details": str(e)}), 400

        try:
            secret = _require_secret()
        except ConfigurationError as e:
            logger.error(f"Cannot relay webhook: {e}")
            return jsonify({"message": "Revalidation is not configured"}), 500

        revalidate_url = current_app.config["RELAY_REVALIDATE_URL"]

        try:
            upstream = requests.post(
                revalidate_url,
                params={"secret": secret},
                json=body,
                timeout=current_app.config["RELAY_TIMEOUT"]
            )
        except requests.exceptions.RequestException as e:
            safe_message = sanitize_error_message(e)
            logger.error(f"Webhook relay request failed: {type(e).__name__}: {safe_message}")
            return jsonify({"message": "Internal server error", "error": safe_message}), 500

        try:
            upstream_result = upstream.json()
        except ValueError:
            logger.error(f"Revalidation endpoint returned a non-JSON response (HTTP {upstream.status_code})")
            return jsonify({
                "message": "Internal server error",
                "error": "Revalidation endpoint returned a non-JSON response"
            }), 500

        if not upstream.ok:
            logger.error(f"Revalidation failed (HTTP {upstream.status_code}): {upstream_result}")
            return jsonify({
                "message": "Revalidation failed",
                "error": upstream_result
            }), upstream.status_code

        return jsonify({
            "message": "Webhook processed successfully",
            "webhook": payload.summary(),
            "revalidation": upstream_result,
            "timestamp": _timestamp()
        }), 200

    @app.route("/blog", methods=["GET"])
    @app.route("/blog/<path:key>", methods=["GET"])
    def blog_page(key: Optional[str] = None):
        """Serve a cached blog page, rendering it on first request.

        A post requested by slug or id is redirected to its canonical path.
        """
        try:
            page = current_app.config["PAGE_CACHE"].get(request.path)
        except ISRBlogError as e:
            logger.error(f"Failed to render {request.path}: {e}")
            return Response(
                "<!DOCTYPE html><html><body><h1>500</h1><p>This page could not be generated.</p></body></html>",
                status=500,
                mimetype="text/html"
            )
        if page.location:
            return redirect(page.location, code=page.status)
        return Response(page.html, status=page.status, mimetype="text/html")

    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint for monitoring and load balancers.

        Returns:
            tuple: (JSON response, 200 status code)

        Example:
            $ curl http://localhost:5000/health
            {"cached_pages": 3, "status": "healthy"}
        """
        cached = len(current_app.config["PAGE_CACHE"].cached_paths())
        return jsonify({"status": "healthy", "cached_pages": cached}), 200

    return app
