"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Guard failure: invalid amount, missing field or ineligible state. Nothing was mutated."""

    pass


class InvalidTransitionError(ValidationError):
    """Event is not defined for the entity's current state"""

    def __init__(self, entity: str, state: str, event: str):
        self.entity = entity
        self.state = state
        self.event = event
        super().__init__(f"Cannot {event} {entity} in state '{state}'")


class LedgerError(DomainException):
    """Ledger entry is malformed or could not be written"""

    pass


class NotFoundError(DomainException):
    """Requested contract, payment or user does not exist"""

    pass
