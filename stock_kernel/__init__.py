"""
Stock Kernel - shared core of the stock variance & replenishment engine.

- Immutable input DTOs with a single numeric normalization policy
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with request-scoped context
"""

__version__ = "0.1.0"
