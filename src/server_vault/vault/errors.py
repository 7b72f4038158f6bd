# Vault - Error Taxonomy
#
# InvalidInputError        caller-correctable (empty field, malformed payload)
# DecryptionError          tag mismatch or wrong key, cause never distinguished
# ConstraintViolationError uniqueness / required-field breach, tx rolled back
# StorageError             database locked, unreadable or malformed

from enum import Enum
from typing import Optional


class ConstraintKind(str, Enum):
    """Which store rule a rejected record set broke."""
    HOST = "host"
    LABEL = "label"
    REQUIRED_FIELD = "required_field"
    GENERIC = "generic"


class VaultError(Exception):
    """Base exception for the credential vault."""


class InvalidInputError(VaultError):
    """Raised when a required value is empty or a payload is malformed.

    Attributes:
        field: Offending field name, when the error concerns a record.
        record_index: Position of the offending record in the input set.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        record_index: Optional[int] = None,
    ):
        super().__init__(message)
        self.field = field
        self.record_index = record_index


class DecryptionError(VaultError):
    """Raised when a payload cannot be authenticated.

    The message is the same for a wrong key and for corrupted data.
    """

    DEFAULT_MESSAGE = "Decryption failed: invalid key or corrupted data"

    def __init__(self, message: str = DEFAULT_MESSAGE):
        super().__init__(message)


class StorageError(VaultError):
    """Raised when the database cannot be opened, read or written.

    Covers locked, unreadable or malformed database files. Constraint
    breaches raise ConstraintViolationError instead.
    """


_FRIENDLY_MESSAGES = {
    ConstraintKind.HOST: "A server with this hostname already exists.",
    ConstraintKind.LABEL: "A server with this nickname already exists.",
    ConstraintKind.REQUIRED_FIELD: "Invalid data: a required field is empty.",
    ConstraintKind.GENERIC: "Invalid data: a database rule was violated.",
}


class ConstraintViolationError(VaultError):
    """Raised when a replace breaks a store constraint.

    The surrounding transaction has already been rolled back when this
    is raised.

    Attributes:
        kind: Which rule was broken.
        value: The colliding host or label, when known.
        record_index: Position of the row that was rejected, when known.
    """

    def __init__(
        self,
        kind: ConstraintKind,
        value: Optional[str] = None,
        record_index: Optional[int] = None,
    ):
        self.kind = kind
        self.value = value
        self.record_index = record_index
        super().__init__(self.friendly_message)

    @property
    def field(self) -> Optional[str]:
        """Record field that collided ("host" / "label"), if any."""
        if self.kind in (ConstraintKind.HOST, ConstraintKind.LABEL):
            return self.kind.value
        return None

    @property
    def friendly_message(self) -> str:
        """Human-readable message suitable for showing to the user."""
        return _FRIENDLY_MESSAGES[self.kind]
