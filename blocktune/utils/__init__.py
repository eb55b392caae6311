"""
Shared helpers for the blocktune engines.

- Exception hierarchy and the engine error-handling decorator.
- Constants for metric names, column prefixes and diagnostic codes.
- Structured diagnostics returned alongside results.
- DataFrame persistence helpers.
"""
