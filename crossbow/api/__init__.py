"""Crossbow HTTP API layer.

This package provides the Falcon ASGI application: webhook receivers, the
read-only dashboard JSON views and health probes.

Usage
-----
Create and run the application::

    from crossbow.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # webhook service with database
"""

from crossbow.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
