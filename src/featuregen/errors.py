"""Errors raised when feature generation cannot complete."""

__all__ = ["FeaturegenError", "InventoryReadError", "ConfigurationWriteError"]


class FeaturegenError(Exception):
    """Base class for fatal feature generation failures."""
    pass


class InventoryReadError(FeaturegenError):
    """Raised when the features already declared for the server cannot be read."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(
            "Error attempting to generate server feature list. Ensure your user "
            "account has read permission to the property files in the server "
            f"installation directory. ({cause})"
        )
        self.cause = cause


class ConfigurationWriteError(FeaturegenError):
    """Raised when the generated features file cannot be written."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(
            "Error attempting to create the server feature file. Ensure your id "
            "has write permission to the server installation directory. "
            f"({cause})"
        )
        self.cause = cause
