class ConfigurationError(ValueError):
    """Raised when a run parameter or dataset is rejected before reaching an engine."""
