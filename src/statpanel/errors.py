"""Exception types for statpanel."""


class StatpanelError(Exception):
    """Base class for statpanel errors."""


class EndpointUnavailable(StatpanelError):
    """The endpoint resolver could not produce a connection address."""


class TransportError(StatpanelError):
    """Socket-level failure on the streaming connection."""


class MalformedMessage(StatpanelError):
    """Inbound frame does not decode to a snapshot object."""
