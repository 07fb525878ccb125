"""
exceptions.py — Error kinds raised by the quote engine

Every error carries a stable ``code`` so the API layer can translate it into
a status code and a localized message without inspecting the text.

Business Rules:
- InvalidConfiguration: scoring weights don't sum to 100, never partially applied
- InvalidTransition: lifecycle event illegal for the current status, quote unchanged
- AlreadyAssigned: lost a supplier-assignment race, caller re-fetches and retries
- NoEligibleSupplier: whole-quote ranking found no supplier covering every item
- ManualOverrideConflict: internal precondition bug, never surfaced to end users

Called by: scoring, ranking, lifecycle, services, main.py (exception handler)
Depends on: nothing
"""


class QuoteEngineError(Exception):
    """Base class for all engine errors."""

    code = "quote_engine_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context


class InvalidConfiguration(QuoteEngineError):
    code = "invalid_configuration"


class InvalidTransition(QuoteEngineError):
    code = "invalid_transition"

    def __init__(self, message: str = "", *, status=None, event=None, **context):
        super().__init__(message, status=status, event=event, **context)
        self.status = status
        self.event = event


class AlreadyAssigned(QuoteEngineError):
    code = "already_assigned"


class NoEligibleSupplier(QuoteEngineError):
    code = "no_eligible_supplier"


class ManualOverrideConflict(QuoteEngineError):
    code = "manual_override_conflict"


class NotFound(QuoteEngineError):
    code = "not_found"


class NotAuthorized(QuoteEngineError):
    code = "not_authorized"
