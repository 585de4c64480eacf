class MatchingError(ValueError):
    """Base class for user-visible matching and booking errors."""


class RequestValidationError(MatchingError):
    pass


class SelectionInvalidError(MatchingError):
    """An explicit provider selection failed eligibility or ownership checks."""

    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.field = field


class SynthesisConflictError(MatchingError):
    """Another writer created the synthesized listing first; callers re-read it."""

    def __init__(self, synthesis_key: str) -> None:
        super().__init__(f"Synthesized listing already exists for {synthesis_key}")
        self.synthesis_key = synthesis_key


class NotFoundError(MatchingError):
    pass


class NoCandidatesAvailable(NotFoundError):
    pass


class ConflictError(MatchingError):
    pass


class AssignmentIntegrityError(ConflictError):
    pass


class PermissionDeniedError(MatchingError):
    pass
