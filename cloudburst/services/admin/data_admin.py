"""
Data Administration
Whole-database export, import and reset
"""
import logging
from typing import Any, Dict, Optional

from cloudburst.core.error_handling import ValidationError
from cloudburst.core.timeutils import current_millis
from cloudburst.models.log_entry import LogType
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

EXPORTED_SUBTREES = ("nodes", "alerts", "contacts", "logs")
IMPORTED_SUBTREES = ("nodes", "alerts", "contacts")
RESET_SUBTREES = ("nodes", "alerts", "contacts", "logs")

RESET_CONFIRMATION = "DELETE"


class DataAdmin:
    """
    Bulk data operations.

    Exports carry no schema version and imports replace each subtree present
    in the payload wholesale.
    """

    def __init__(self, store: RealtimeStore, activity_log: Optional[ActivityLog] = None):
        self.store = store
        self.activity_log = activity_log

    def export_all(self) -> Dict[str, Any]:
        """``{nodes, alerts, contacts, logs, exportDate}``"""
        export = {name: self.store.get(name) or {} for name in EXPORTED_SUBTREES}
        export["exportDate"] = current_millis()
        logger.info(
            "Exported " + ", ".join(f"{len(export[name])} {name}" for name in EXPORTED_SUBTREES)
        )
        return export

    def import_data(self, payload: Dict[str, Any]) -> Dict[str, int]:
        """
        Restore the ``nodes``, ``alerts`` and ``contacts`` subtrees found in ``payload``.

        Every present subtree is checked before the first write. Subtrees are
        then replaced one after another; a store failure leaves the earlier
        ones replaced.

        Returns:
            Number of records imported per subtree

        Raises:
            ValidationError: Payload is not an object or a subtree is not an object
        """
        if not isinstance(payload, dict):
            raise ValidationError("Import payload must be a JSON object")

        subtrees = {name: payload[name] for name in IMPORTED_SUBTREES if payload.get(name)}
        invalid = [name for name, subtree in subtrees.items() if not isinstance(subtree, dict)]
        if invalid:
            raise ValidationError(
                f"Imported {', '.join(invalid)} must be an object keyed by id",
                details={"invalid": invalid},
            )

        imported = {}
        for name, subtree in subtrees.items():
            self.store.set(name, subtree)
            imported[name] = len(subtree)

        logger.info(f"Imported {imported}")
        if self.activity_log:
            self.activity_log.record(
                LogType.DATA_IMPORT, "Historical data was imported", metadata=imported
            )
        return imported

    def reset_system(self, confirmation: str) -> None:
        """
        Remove nodes, alerts, contacts and logs.

        Raises:
            ValidationError: ``confirmation`` is not ``DELETE``
        """
        if confirmation != RESET_CONFIRMATION:
            raise ValidationError(f"Please type {RESET_CONFIRMATION} to confirm")

        for name in RESET_SUBTREES:
            self.store.remove(name)

        logger.warning("System reset: nodes, alerts, contacts and logs removed")
        if self.activity_log:
            self.activity_log.record(LogType.SYSTEM_RESET, "System reset complete")
