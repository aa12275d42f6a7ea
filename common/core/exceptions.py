from typing import Iterable, Optional


class AppException(Exception):
    """Base application exception."""

    pass


class NotFoundError(AppException):
    """Resource not found exception."""

    pass


class ValidationError(AppException):
    """Validation error exception."""

    pass


class ConflictError(AppException):
    """Operation conflicts with the current state of a resource."""

    pass


class InvalidStateTransitionError(ConflictError):
    """Lifecycle operation attempted from a state that does not allow it."""

    def __init__(
        self,
        entity: str,
        current_state: str,
        required_states: Iterable[str],
        message: Optional[str] = None,
    ):
        self.entity = entity
        self.current_state = getattr(current_state, "value", current_state)
        self.required_states = [getattr(s, "value", s) for s in required_states]
        super().__init__(
            message
            or f"{entity} must be in state {' or '.join(self.required_states)}, "
            f"current state is {self.current_state}"
        )
