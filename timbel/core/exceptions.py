class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"
    default_message = "The request violates a business rule"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"
    default_message = "Invalid input"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "forbidden"
    default_message = "You do not have permission to perform this action"


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""

    code = "not_found"
    default_message = "Record not found"


class ProvisioningError(DomainError):
    """Raised when the user record cannot be created after all retries."""

    code = "provisioning_failed"
    default_message = "Could not create the user record"


# Note rules

class SelfRecipientError(ValidationError):
    code = "self_recipient"
    default_message = "You cannot send a note to yourself"


class NotRecipientError(AuthorizationError):
    code = "not_recipient"
    default_message = "Only the recipient of a note can reply to it"


class NotOwnerError(AuthorizationError):
    code = "not_owner"
    default_message = "Members can only start notes on their own weekly task"


class NotSenderError(AuthorizationError):
    code = "not_sender"
    default_message = "Only the sender of the opening note can resolve or reopen the thread"


class NoteNotFoundError(NotFoundError):
    code = "note_not_found"
    default_message = "Note not found"


class InvalidStatusTransitionError(ValidationError):
    code = "invalid_transition"
    default_message = "This status change is not allowed"
