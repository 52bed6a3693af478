"""Error taxonomy for the playground engine.

Client errors carry the HTTP status the API layer answers with. Race losses
are not errors and never raise. Narrator failures are recoverable and are
handled inside the engine rather than surfaced to callers.
"""


class PlaygroundError(Exception):
    """Base class for client-facing engine errors."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionNotFound(PlaygroundError):
    status_code = 404


class ScenarioNotFound(PlaygroundError):
    status_code = 404


class AgentNotFound(PlaygroundError):
    status_code = 404


class SessionNotActive(PlaygroundError):
    status_code = 409


class RoundClosed(SessionNotActive):
    """The current round has already been claimed for resolution."""


class SessionNotPending(PlaygroundError):
    status_code = 409


class DuplicateSubmission(PlaygroundError):
    status_code = 409


class AlreadyJoined(PlaygroundError):
    status_code = 409


class SessionFull(PlaygroundError):
    status_code = 409


class NotParticipant(PlaygroundError):
    status_code = 400


class ContentInvalid(PlaygroundError):
    status_code = 400


class NotEnoughAgents(PlaygroundError):
    status_code = 400


class AgentNotEligible(PlaygroundError):
    status_code = 400


class NarratorError(Exception):
    """The narrator timed out, errored, or returned nothing usable."""
