"""Gunicorn configuration for the blog server and Storyblok webhook receiver.

All logs are sent to stdout/stderr for Docker visibility via
`docker compose logs`.
"""

import sys

# Bind to all interfaces on port 5000
bind = "0.0.0.0:5000"

# Worker configuration
# One process keeps a single page cache. Threads are required: the relay
# endpoint calls /api/revalidate on this same server and would deadlock a
# single sync worker.
workers = 1
worker_class = "gthread"
threads = 8
timeout = 60
keepalive = 2

# Logging configuration
accesslog = "-"  # Log all HTTP requests to stdout
errorlog = "-"   # Log all errors to stderr
loglevel = "info"

# Access log format
# %(h)s remote IP, %(r)s request line, %(s)s status, %(b)s response size,
# %(a)s user agent, %(D)s request time in microseconds
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s "%(a)s" %(D)s'

capture_output = True  # Capture stdout/stderr from application
enable_stdio_inheritance = True  # Inherit stdio from parent process


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting Gunicorn for ISR blog")


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Gunicorn server is ready to accept connections")


def on_exit(server):
    """Called just before exiting Gunicorn."""
    server.log.info("Shutting down Gunicorn")


def worker_abort(worker):
    """Called when a worker receives a SIGABRT signal."""
    worker.log.error("Worker received SIGABRT signal - likely timeout")


# The page cache lives in the worker; preloading would build it in the master
preload_app = False
reload = False

# Server mechanics
daemon = False  # Run in foreground for Docker
pidfile = None  # No PID file needed in containers

# Request limits
limit_request_line = 4096  # Max size of HTTP request line
limit_request_fields = 100  # Max number of HTTP headers
limit_request_field_size = 8190  # Max size of HTTP header field

logconfig_dict = {
    'version': 1,
    'disable_existing_loggers': False,
    'loggers': {
        'gunicorn.error': {
            'level': 'INFO',
            'handlers': ['error_console'],
            'propagate': False,
            'qualname': 'gunicorn.error'
        },
        'gunicorn.access': {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False,
            'qualname': 'gunicorn.access'
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'generic',
            'stream': sys.stdout
        },
        'error_console': {
            'class': 'logging.StreamHandler',
            'formatter': 'generic',
            'stream': sys.stderr
        },
    },
    'formatters': {
        'generic': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
            'class': 'logging.Formatter'
        }
    }
}
