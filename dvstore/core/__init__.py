"""Core Layer — error taxonomy, redaction and boundary protocols.

Invariants:
    - Core never imports from api/ or infrastructure/
    - No IO in this package
"""
