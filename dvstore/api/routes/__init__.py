"""Route Modules — plain FastAPI routes that do not go through the request adapter.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
"""
