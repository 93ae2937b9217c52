"""
HTTP API for the narrative engine.

- app: ``create_app()`` factory (CORS, rate limiting, error handlers)
- routes: Endpoint handlers
- schemas: Request payload models
- helpers: Body parsing and shared classify/profile step
"""

from .app import create_app

__all__ = ["create_app"]
