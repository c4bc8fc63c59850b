"""
Engine error taxonomy.

Engine modules raise these; the Flask error handlers and the batch runner
translate them into HTTP responses and per-lead failure records.
"""


class EngineError(Exception):
    """Base class for all lead engine errors."""
    http_status = 500


class NotFoundError(EngineError):
    """A lead, thread, meeting or suggestion is absent or soft-deleted."""
    http_status = 404

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class ValidationFailure(EngineError):
    """AI output did not conform to the expected schema."""
    http_status = 502

    def __init__(self, message, raw_output=None, errors=None):
        self.raw_output = raw_output
        self.errors = errors or []
        super().__init__(message)


class ExternalCallFailure(EngineError):
    """The AI provider call failed. The provider exception is chained as __cause__."""
    http_status = 503

    def __init__(self, service, message):
        self.service = service
        super().__init__(f"{service}: {message}")


class PersistenceFailure(EngineError):
    """A write to the store failed. Earlier steps are not rolled back."""
    http_status = 500


class InvalidTransition(EngineError):
    """A suggestion review was requested on an already-processed suggestion."""
    http_status = 409
