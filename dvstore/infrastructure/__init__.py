"""Infrastructure Layer — persistence, logging and telemetry.

Invariants:
    - Infrastructure never imports from api/
    - Store failures surface as core/errors.py types
"""
