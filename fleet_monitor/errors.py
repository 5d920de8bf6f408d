class MonitorError(Exception):
    """Base class for monitor errors"""


class ConfigError(MonitorError):
    """Invalid or missing configuration, fatal at startup"""


class PollError(MonitorError):
    """A node or service could not be observed"""


class TransportError(PollError):
    """Timeout, refused connection, DNS failure or non-2xx status"""


class DecodeError(PollError):
    """Response arrived but could not be decoded"""
