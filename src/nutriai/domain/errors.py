"""Typed errors raised by the meal engine.

Each error carries a machine-readable stage tag and the HTTP status the API
maps it to. Messages are safe to show to callers.
"""


class EngineError(Exception):
    """Base error for every rejection the engine surfaces."""

    stage = "fatal"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage
        if status_code is not None:
            self.status_code = status_code


class PayloadParsingError(EngineError):
    """Request body could not be parsed."""

    stage = "payload-parsing"
    status_code = 400


class AuthenticationError(EngineError):
    """Caller credential is missing, malformed, invalid or expired."""

    stage = "authentication"
    status_code = 401

    def __init__(
        self,
        message: str,
        *,
        auth_status: str = "Invalid-Token",
        stage: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.auth_status = auth_status


class AuthorizationError(EngineError):
    """Caller is authenticated but may not act on the requested resource."""

    stage = "authorization"
    status_code = 403


class RequestValidationError(EngineError):
    """Business-level input is invalid."""

    stage = "validation"
    status_code = 400


class AnalysisValidationError(EngineError):
    """Analysis payload does not fit the schema."""

    stage = "validation"
    status_code = 400

    def __init__(self, issues: list[str]) -> None:
        super().__init__(f"Invalid meal analysis ({len(issues)} issue(s))")
        self.issues = issues


class ExtractionFailedError(EngineError):
    """Completion service never produced a valid analysis."""

    stage = "extraction-failed"
    status_code = 502


class PersistenceError(EngineError):
    """Meal group could not be written consistently."""

    stage = "persistence"
    status_code = 500


class MealGroupNotFoundError(EngineError):
    """No logged entries reference the meal group."""

    stage = "not-found"
    status_code = 404


class ConflictError(EngineError):
    """Correction history changed since it was read."""

    stage = "conflict"
    status_code = 409
