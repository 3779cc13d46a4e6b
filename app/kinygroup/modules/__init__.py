"""
Feature modules live under this package.

Each module owns its models, service functions and blueprints (``admin`` for
dashboard pages, ``api`` for JSON), and reuses the platform pieces: auth,
RBAC, audit, storage and the DB session.
"""
