"""
Core package for the Copydesk backend.
Importing this package loads the route modules so their route definitions
attach to the shared FastAPI application.
"""

# Import order matters: ensure app state is initialized before routes.
from . import app_state  # noqa: F401

# Route modules register themselves upon import.
from . import generation_routes  # noqa: F401
