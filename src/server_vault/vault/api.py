# Vault API - Boundary used by front ends (desktop shell, CLI)
#
# Records cross this boundary as plain dicts:
#     {"label": ..., "host": ..., "account": ..., "secret": <plaintext>}
#
# - load_servers()    list of dicts, raises DecryptionError if unreadable
# - save_servers()    full-set replace, returns (success, message)
# - delete_servers()  removes matching hosts, ignores unknown ones; takes a
#                     collection of hosts, never a bare string

import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import ConstraintViolationError, InvalidInputError, VaultError
from .models import ServerRecord
from .vault_manager import VaultManager

logger = logging.getLogger(__name__)


class ServerVaultAPI:
    """Dict-based facade over a VaultManager.

    Args:
        manager: Vault manager holding the repository and key.
    """

    def __init__(self, manager: VaultManager):
        self.manager = manager

    def load_servers(self) -> List[Dict[str, str]]:
        """
        Return every server with its secret decrypted.

        Raises:
            DecryptionError: If the vault cannot be read with this
                machine's key. The message is safe to show to the user.
        """
        return [record.to_dict() for record in self.manager.load()]

    def save_servers(self, rows: Sequence[Mapping[str, Any]]) -> Tuple[bool, str]:
        """
        Replace the stored server set with ``rows``.

        Returns:
            (success, message). Failures never raise; the message is safe
            to show to the user.
        """
        try:
            if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Sequence):
                raise InvalidInputError("Servers must be a list of objects")
            records = [
                ServerRecord.from_dict(row, index) for index, row in enumerate(rows)
            ]
            self.manager.save(records)
        except ConstraintViolationError as e:
            return False, e.friendly_message
        except InvalidInputError as e:
            return False, str(e)
        except VaultError as e:
            logger.error("Save failed: %s", e)
            return False, f"Save failed: {e}"

        return True, f"Saved {len(records)} server(s)."

    def delete_servers(self, hosts: Iterable[str]) -> int:
        """Delete servers by host. Unknown hosts are ignored.

        Raises:
            InvalidInputError: If ``hosts`` is a bare string.
            StorageError: If the database cannot be written.
        """
        return self.manager.delete_by_hosts(hosts)
