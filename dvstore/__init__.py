"""DVStore — HTTP API for storing and retrieving distributed validator cluster definitions.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""

__version__ = "0.1.0"
