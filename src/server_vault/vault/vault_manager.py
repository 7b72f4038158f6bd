# Vault Manager - Plaintext-in / plaintext-out server vault
#
# Composes CredentialRepository + AuthenticatedCipher:
#   load()   repository rows → open each secret → ServerRecord list
#   save()   validate → seal each secret → repository.replace_all
#   delete_by_hosts()  straight to the repository
#
# Holds no copy of the record set; the repository is the source of truth.

import logging
from typing import Iterable, List, Optional, Sequence

from .encryption import AuthenticatedCipher, KeyMaterial, get_machine_key
from .errors import ConstraintViolationError, DecryptionError, InvalidInputError
from .models import CredentialRecord, ServerRecord
from .repository import CredentialRepository, host_list
from ..core import AuditLogger, EventSeverity, EventType, get_audit_logger

logger = logging.getLogger(__name__)


class VaultManager:
    """
    Manages the encrypted server vault.

    Security:
    - Each secret encrypted with AES-256-GCM under the machine key
    - The key is derived from the machine fingerprint, never stored
    - A load either decrypts every record or fails as a whole
    - Audit logging for every load, save and delete (no secret values)

    Args:
        repository: Backing credential store.
        key: Vault key. Defaults to this machine's derived key.
        audit: Audit logger. Defaults to the global one.
    """

    UNREADABLE_MESSAGE = (
        "Vault is unreadable with this machine's key. "
        "The stored secrets were written on another machine or have been damaged."
    )

    def __init__(
        self,
        repository: CredentialRepository,
        key: Optional[KeyMaterial] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.repository = repository
        self._key = key if key is not None else get_machine_key()
        self.audit = audit or get_audit_logger()

    def load(self) -> List[ServerRecord]:
        """
        Load and decrypt every server record.

        Returns:
            All records with plaintext secrets, in stored order

        Raises:
            DecryptionError: If any secret cannot be decrypted (no partial
                result is returned)
            StorageError: If the database cannot be read
        """
        rows = self.repository.load_all()
        records = []
        for row in rows:
            try:
                secret = AuthenticatedCipher.open(self._key, row.secret)
            except (DecryptionError, InvalidInputError):
                self.audit.log_event(
                    event_type=EventType.VAULT_UNREADABLE,
                    severity=EventSeverity.CRITICAL,
                    message="Vault could not be decrypted with the current key",
                    details={"record_count": len(rows)},
                )
                raise DecryptionError(self.UNREADABLE_MESSAGE) from None
            records.append(
                ServerRecord(label=row.label, host=row.host, account=row.account, secret=secret)
            )

        self.audit.log_vault_event(
            EventType.SERVERS_LOADED,
            f"Loaded {len(records)} server(s)",
            details={"record_count": len(records)},
        )
        return records

    def save(self, records: Sequence[ServerRecord]) -> None:
        """
        Validate, encrypt and atomically replace the whole server set.

        Args:
            records: Complete new set of servers (plaintext secrets)

        Raises:
            InvalidInputError: If a record has an empty field
            ConstraintViolationError: If two records share a host or label
            StorageError: If the database cannot be written
        """
        self._validate(records)

        sealed = [
            CredentialRecord(
                label=record.label,
                host=record.host,
                account=record.account,
                secret=AuthenticatedCipher.seal(self._key, record.secret),
            )
            for record in records
        ]

        try:
            self.repository.replace_all(sealed)
        except ConstraintViolationError as e:
            self.audit.log_event(
                event_type=EventType.SAVE_REJECTED,
                severity=EventSeverity.ALERT,
                message=f"Save rejected: duplicate or invalid {e.field or e.kind.value}",
                details={
                    "constraint": e.kind.value,
                    "value": e.value,
                    "record_index": e.record_index,
                },
            )
            raise

        self.audit.log_vault_event(
            EventType.SERVERS_SAVED,
            f"Saved {len(sealed)} server(s)",
            details={"hosts": [record.host for record in sealed]},
        )

    def delete_by_hosts(self, hosts: Iterable[str]) -> int:
        """Remove servers by host; unknown hosts are ignored.

        Returns:
            Number of servers removed.
        """
        hosts = host_list(hosts)
        removed = self.repository.delete_by_hosts(hosts)
        self.audit.log_vault_event(
            EventType.SERVERS_DELETED,
            f"Deleted {removed} server(s)",
            details={"hosts": hosts, "removed": removed},
        )
        return removed

    def _validate(self, records: Sequence[ServerRecord]) -> None:
        """Reject the first record with an empty field."""
        for index, record in enumerate(records):
            empty = record.empty_fields()
            if empty:
                name = record.label or record.host or f"#{index + 1}"
                error = InvalidInputError(
                    f"Server {name}: {empty[0]} must not be empty",
                    field=empty[0],
                    record_index=index,
                )
                self.audit.log_event(
                    event_type=EventType.SAVE_REJECTED,
                    severity=EventSeverity.ALERT,
                    message=f"Save rejected: empty {empty[0]}",
                    details={"record_index": index},
                )
                raise error
