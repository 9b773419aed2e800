class HeatsError(Exception):
    """Base class for errors raised by heats."""


class ConfigError(HeatsError):
    """The configuration file could not be read or validated."""


class ClientError(HeatsError):
    """The dmenu client failed to talk to the daemon."""


class DaemonNotRunning(ClientError):
    """Nothing is listening on the daemon socket."""
