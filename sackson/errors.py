"""
Errors - Exception taxonomy for the client engine.

Inbound problems (the server sent something we cannot use):
- MalformedMessage: unparsable text or unknown message kind
- VersionMismatch: envelope from another protocol revision
- InvalidPayload: known kind, wrong shape
- IllegalTransition: board regresses or directive names an unknown phase

Outbound problems (the player asked for something we will not send):
- PhaseMismatch: action kind not enabled in the current phase
- InvalidActionInput: bad numbers, unknown tiles or corporations
- ActionInFlight: an action is already waiting for the server
- SessionFrozen: the connection is gone

None of these close the connection. Only a transport close freezes a session.
"""

from __future__ import annotations


class SacksonError(Exception):
    """Base class for all engine errors."""

    code = "error"

    def __init__(self, message: str, **details):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigError(SacksonError):
    """Raised when environment configuration cannot be parsed."""

    code = "config_error"


# Inbound

class ProtocolError(SacksonError):
    """A server message that was dropped before reaching the controller."""

    code = "protocol_error"


class MalformedMessage(ProtocolError):
    code = "malformed_message"


class VersionMismatch(MalformedMessage):
    code = "version_mismatch"


class InvalidPayload(ProtocolError):
    code = "invalid_payload"


class IllegalTransition(SacksonError):
    """A decoded message that cannot be applied to the current state."""

    code = "illegal_transition"


# Outbound

class ActionRejected(SacksonError):
    """A player action refused locally. Nothing was sent."""

    code = "action_rejected"


class PhaseMismatch(ActionRejected):
    code = "phase_mismatch"


class InvalidActionInput(ActionRejected):
    code = "invalid_action_input"


class ActionInFlight(ActionRejected):
    code = "action_in_flight"


class SessionFrozen(ActionRejected):
    code = "session_frozen"
