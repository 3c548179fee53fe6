class StatusError(Exception):
    """Base class for status report failures."""


class RootResolutionError(StatusError):
    """The working tree or the index could not be read."""


class DiffEngineError(StatusError):
    """The diff engine failed while producing per-path stats."""


class DuplicateStatError(StatusError):
    """A phase reported the same path twice under the reject policy."""


class ConfigError(StatusError):
    """Invalid colour or layout configuration."""
