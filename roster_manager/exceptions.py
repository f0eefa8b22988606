class RosterError(Exception):
    """Base for every error raised by the roster engine."""


class GenerationError(RosterError):
    pass


class InsufficientStaff(GenerationError):
    def __init__(self, available: int, required: int = 2):
        self.available = available
        self.required = required
        super().__init__(f"active physicians: {available} (need at least {required})")


class Unsatisfiable(GenerationError):
    def __init__(self, date: str, reason: str = ""):
        self.date = date
        self.reason = reason
        msg = f"no valid assignment for {date}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PersistenceFailure(RosterError):
    pass


class AuthenticationError(RosterError):
    pass


# interactive CLI flow control
class CancelAction(Exception):
    pass


class GoBackAction(Exception):
    pass
