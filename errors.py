class ConfigurationError(ValueError):
    """Raised when a board or constraint is built from options that cannot describe a puzzle."""

    pass
