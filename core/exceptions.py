"""Domain errors raised by services and turned into HTTP 400 responses by the app."""


class BusinessRuleError(ValueError):
    """An operation was refused because it breaks a business rule."""


class InvalidTransitionError(BusinessRuleError):
    """A status change is not allowed from the current status."""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(
            f"Transition {entity} '{current}' -> '{target}' non autorisée"
        )
