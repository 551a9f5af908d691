"""Exception hierarchy for the proxy pool."""


class ProxyPoolError(Exception):
    """Base class for every error raised by the package."""


class ConfigError(ProxyPoolError):
    """The configuration could not be found, read or validated."""


class StorageError(ProxyPoolError):
    """A storage backend failed or was used incorrectly."""