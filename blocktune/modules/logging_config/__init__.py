"""
Logging Configuration
=====================

Responsibility:
- Root logger setup with a colored console handler (colorama).
- Rotating UTF-8 log file under the configured log directory.
"""

from .logging_config import LoggingConfigurator, ColoredFormatter

__all__ = ['LoggingConfigurator', 'ColoredFormatter']
