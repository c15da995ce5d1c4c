"""
ISR Blog Core Module.

This module provides the main entry point for the ISR blog service: a small
blog whose pages are generated from Storyblok content, cached indefinitely,
and regenerated on demand when Storyblok reports a change.

The isrblog entry point embeds Gunicorn to run the Flask application, which:
1. Serves /blog and /blog/<key> from an in-process page cache
2. Receives Storyblok webhooks (POST /api/storyblok-webhook)
3. Authorizes and validates them (POST /api/revalidate)
4. Regenerates the affected pages concurrently from fresh Storyblok content

Functions:
    configure_logging(debug) -> None:
        Rotating file + stdout logging on the root logger.
    build_app(config) -> Flask:
        Wires client, content service, page cache and revalidator into the app.
    main() -> None:
        Entry point for the console script. Starts Gunicorn on port 5000.

Example:
    Run via console script:
        $ poetry run isrblog
        Starting Gunicorn for ISR blog
        Gunicorn server is ready to accept connections
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from flask import Flask

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False, log_file: str = "isrblog.log") -> None:
    """Configure the root logger with a 10MB rotating file and stdout.

    Args:
        debug: DEBUG level when True, INFO otherwise
        log_file: Path of the rotating log file
    """
    log_level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers to avoid duplicates (e.g., from gunicorn)
    root_logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Rotating file handler with 10MB limit and 3 backup files
    log_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=3
    )
    log_handler.setLevel(log_level)
    log_handler.setFormatter(formatter)
    root_logger.addHandler(log_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def build_app(config: Dict[str, Any], prerender: bool = True) -> Flask:
    """Build the Flask app and its collaborators from configuration.

    Args:
        config: Configuration dictionary (see config.get_default_config)
        prerender: Warm the page cache before serving

    Returns:
        Configured Flask application
    """
    from storyblok import StoryblokContentAPIClient, BlogContentService, BLOG_PREFIX
    from pages import PageRenderer
    from revalidation import PageCache, Revalidator
    from webhook import create_app

    storyblok_config = config.get("storyblok", {})
    revalidation_config = config.get("revalidation", {})

    logger.info("Initializing Storyblok client from configuration")
    client = StoryblokContentAPIClient.from_config(config)
    if not client.enabled:
        logger.warning("  - Storyblok access token missing; pages will fail to render until it is set")

    content_service = BlogContentService(client, starts_with=storyblok_config.get("starts_with", BLOG_PREFIX))
    page_cache = PageCache(PageRenderer(content_service, site_title=config.get("site_title", "ISR Blog Example")))
    revalidator = Revalidator(page_cache, max_workers=revalidation_config.get("max_workers", 10))

    if prerender and client.enabled:
        prerender_count = revalidation_config.get("prerender_count", 2)
        logger.info(f"Prerendering blog index and first {prerender_count} post(s)")
        page_cache.prerender(limit=prerender_count)

    return create_app(page_cache, revalidator=revalidator, config=config)


def main(debug: bool = False, config_path: Optional[str] = None) -> None:
    """Main entry point for the isrblog console command.

    Args:
        debug: Enable debug logging and disable the worker timeout for
               breakpoint debugging. Can be set via --debug flag or
               ISRBLOG_DEBUG environment variable.
        config_path: Optional explicit path to config.yml

    Architecture:
        Docker -> poetry run isrblog -> isrblog.py main() -> Gunicorn -> Flask app
    """
    from gunicorn.app.base import BaseApplication
    from config import load_config

    # Parse debug flag from environment or command line args
    if not debug:
        debug = os.environ.get("ISRBLOG_DEBUG", "").lower() in ("true", "1", "yes")
        if "--debug" in sys.argv[1:]:
            debug = True

    configure_logging(debug)
    if debug:
        logger.info("Debug mode enabled: verbose logging and worker timeout disabled for breakpoint debugging")

    logger.info("Loading configuration from config.yml")
    config = load_config(config_path)

    app = build_app(config)

    # Load Gunicorn configuration from webhook package
    gunicorn_config_path = os.path.join(os.path.dirname(__file__), "..", "webhook", "gunicorn_config.py")

    class StandaloneApplication(BaseApplication):
        """Custom Gunicorn application for embedding within isrblog entry point."""

        def __init__(self, app, options=None):
            self.options = options or {}
            self.application = app
            super().__init__()

        def load_config(self):
            config_file = self.options.get("config")
            if config_file:
                # Execute the config file to load settings
                with open(config_file, "r") as f:
                    config_code = f.read()
                config_namespace: Dict[str, Any] = {}
                exec(config_code, config_namespace)
                for key, value in config_namespace.items():
                    if key in self.cfg.settings and value is not None:
                        self.cfg.set(key.lower(), value)

            if self.options.get("debug"):
                self.cfg.set("timeout", 0)
                self.cfg.set("loglevel", "debug")

        def load(self):
            return self.application

    options = {
        "config": gunicorn_config_path,
        "debug": debug,
    }
    StandaloneApplication(app, options).run()


# Allow running as a script for development/testing
if __name__ == "__main__":
    main()
