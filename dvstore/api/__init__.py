"""API Layer — request adapter, endpoint table, handlers and error handlers.

Invariants:
    - Definition routes are registered only through endpoints.build_router
    - All endpoints return JSON bodies or empty 200s
"""
