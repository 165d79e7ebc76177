"""
Erreurs typees du moteur de reservation / Typed reservation engine errors.

Validation -> 400, NotFound -> 404, Conflict -> 409, Internal -> 500.
Les routes laissent remonter ces erreurs ; main.py les convertit en JSON.
Routes let these errors propagate; main.py renders them as JSON.
"""


class EngineError(Exception):
    status_code: int = 500
    code: str = "INTERNAL"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, **self.details}


class ValidationError(EngineError):
    """Entree invalide / Malformed input, inverted dates, non-contiguous slots."""
    status_code = 400
    code = "VALIDATION"

    def __init__(self, message: str, errors: list[str] | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.errors = errors or [message]

    def to_dict(self) -> dict:
        return {**super().to_dict(), "errors": self.errors}


class NotFoundError(EngineError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(EngineError):
    status_code = 409
    code = "CONFLICT"


class InternalError(EngineError):
    """Erreur stockage/transaction / Storage or transaction failure.

    Le message interne est journalise mais jamais expose au client.
    The internal message is logged but never exposed to the caller.
    """
    status_code = 500
    code = "INTERNAL"

    def to_dict(self) -> dict:
        return {"detail": "Internal error", "code": self.code}
