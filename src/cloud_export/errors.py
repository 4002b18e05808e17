"""Exceptions raised by the exporter."""


class ExportError(RuntimeError):
    """Base class for all exporter errors."""


class ConfigError(ExportError, ValueError):
    """The step configuration is invalid or incomplete."""


class AuthorizationError(ExportError):
    """OAuth authorization did not produce a usable token."""


class ApiError(ExportError):
    """A provider answered successfully at HTTP level but reported a failure."""


class ContactSchemaError(ExportError, ValueError):
    """A contact does not fit the fixed CSV schema."""
