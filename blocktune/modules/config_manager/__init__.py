"""
Configuration Manager
=====================

Responsibility:
- Load the run configuration (JSON) and validate it against the packaged schema.
- Logical and resource checks (search size, memory) before any work starts.
- Master seed propagation and run artifacts (config copy, hash, metadata).
"""

from .config_manager import ConfigurationManager

__all__ = ['ConfigurationManager']
