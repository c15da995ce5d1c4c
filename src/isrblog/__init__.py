"""ISR Blog Package.

Entry point for the blog service that renders Storyblok content, caches the
pages indefinitely and regenerates them when Storyblok webhooks arrive.

Exported Functions:
    main: Entry point for the isrblog console command
    build_app: Wire the Flask app from a configuration dictionary
"""
from .isrblog import main, build_app, configure_logging

__all__ = ["main", "build_app", "configure_logging"]
