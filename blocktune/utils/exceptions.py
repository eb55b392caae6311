"""
Custom exception hierarchy for the blocktune tuning system.
"""

class BlockTuneException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(BlockTuneException):
    """Configuration validation failed."""
    pass

class DataValidationError(BlockTuneException):
    """Input validation failed before any computation."""
    pass

class ModelTrainingError(BlockTuneException):
    """Model fitting failed."""
    pass

class PredictionError(BlockTuneException):
    """Prediction generation failed."""
    pass
