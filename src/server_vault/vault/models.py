# Vault - Record Models
#
# CredentialRecord  row as stored (secret = encoded EncryptedPayload)
# ServerRecord      row as seen by callers (secret = plaintext)
#
# Only ``secret`` is ever encrypted; label, host and account are stored as-is.

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidInputError

# Column order shared by the table, the models and error messages
FIELDS = ("label", "host", "account", "secret")


@dataclass(frozen=True)
class CredentialRecord:
    """A persisted server entry whose secret is an encrypted payload."""
    label: str
    host: str
    account: str
    secret: str

    def empty_fields(self) -> List[str]:
        """Names of fields that are empty, in column order."""
        return [name for name in FIELDS if not getattr(self, name)]

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class ServerRecord:
    """A server entry with its secret in plaintext.

    ``repr`` masks the secret so records can be logged safely.
    """
    label: str
    host: str
    account: str
    secret: str

    def empty_fields(self) -> List[str]:
        """Names of fields that are empty, in column order."""
        return [name for name in FIELDS if not getattr(self, name)]

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: Optional[int] = None) -> "ServerRecord":
        """Build a record from a mapping, treating missing or null keys as empty.

        Raises:
            InvalidInputError: If ``data`` is not a mapping or a field holds
                something other than a string.
        """
        where = f"Server #{index + 1}" if index is not None else "Server"
        if not isinstance(data, Mapping):
            raise InvalidInputError(
                f"{where} must be an object with {', '.join(FIELDS)}, "
                f"got {type(data).__name__}",
                record_index=index,
            )

        values = {}
        for name in FIELDS:
            value = data.get(name)
            if value is None:
                value = ""
            elif not isinstance(value, str):
                raise InvalidInputError(
                    f"{where}: {name} must be text, got {type(value).__name__}",
                    field=name,
                    record_index=index,
                )
            values[name] = value
        return cls(**values)

    def __repr__(self) -> str:
        return (
            f"ServerRecord(label={self.label!r}, host={self.host!r}, "
            f"account={self.account!r}, secret='***')"
        )
