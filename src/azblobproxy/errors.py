class ConfigurationError(ValueError):
    """Raised when proxy or store configuration is invalid or incomplete."""

    pass
