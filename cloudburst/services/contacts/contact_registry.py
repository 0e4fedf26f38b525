"""
Contact Registry
Notification recipients and their node associations
"""
import logging
import re
from typing import Iterable, List, Optional

from cloudburst.core.error_handling import ResourceNotFoundError, ValidationError
from cloudburst.core.timeutils import current_millis, generate_id
from cloudburst.models.contact import Contact, NotificationPreference
from cloudburst.models.log_entry import LogType
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

CONTACTS_PATH = "contacts"
COUNTRY_CODE = "91"

_NON_DIGITS = re.compile(r"\D")


def _digits(phone: str) -> str:
    return _NON_DIGITS.sub("", phone or "")


def is_valid_phone_number(phone: str) -> bool:
    """10-digit Indian mobile number, optionally prefixed with 91"""
    digits = _digits(phone)
    return len(digits) == 10 or (len(digits) == 12 and digits.startswith(COUNTRY_CODE))


def normalize_phone_number(phone: str) -> str:
    """
    Normalize to ``+91XXXXXXXXXX``.

    Raises:
        ValidationError: If the number is not a valid Indian mobile number
    """
    if not is_valid_phone_number(phone):
        raise ValidationError(
            "Invalid phone number. Enter 10-digit Indian number.",
            details={"phone": phone}
        )
    digits = _digits(phone)
    if len(digits) == 10:
        return f"+{COUNTRY_CODE}{digits}"
    return f"+{digits}"


class ContactRegistry:
    """Create, list and delete contacts; compute alert recipients"""

    def __init__(self, store: RealtimeStore, activity_log: Optional[ActivityLog] = None):
        self.store = store
        self.activity_log = activity_log

    def add_contact(
        self,
        name: str,
        phone: str,
        email: Optional[str] = None,
        associated_node_ids: Optional[Iterable[str]] = None,
        preference: str = NotificationPreference.SMS.value,
    ) -> Contact:
        """
        Validate and store a new contact

        Args:
            name: Display name
            phone: Phone number in any common format
            email: Optional email address
            associated_node_ids: Nodes whose alerts reach this contact
            preference: ``sms``, ``email`` or ``both``

        Returns:
            Stored Contact

        Raises:
            ValidationError: Missing name, bad phone number or unknown preference
        """
        if not name or not name.strip():
            raise ValidationError("Contact name is required")

        try:
            preference = NotificationPreference(preference)
        except ValueError:
            raise ValidationError(
                f"Invalid notification preference: {preference}",
                details={"allowed": [p.value for p in NotificationPreference]}
            ) from None

        formatted_phone = normalize_phone_number(phone)

        now = current_millis()
        contact = Contact(
            id=generate_id("contact"),
            name=name.strip(),
            phone=formatted_phone,
            email=email or "",
            notification_preference=preference,
            associated_nodes=list(associated_node_ids or []),
            created_at=now,
            last_updated=now,
        )

        self.store.set(f"{CONTACTS_PATH}/{contact.id}", contact.to_document())
        logger.info(f"Contact {contact.id} added for {len(contact.associated_nodes)} node(s)")

        if self.activity_log:
            self.activity_log.record(
                LogType.CONTACT_ADDED,
                f"Contact {contact.name} was added",
                metadata={"contactId": contact.id},
            )
        return contact

    def delete_contact(self, contact_id: str) -> None:
        """Remove a contact; alerts that already list its phone keep it"""
        self.store.remove(f"{CONTACTS_PATH}/{contact_id}")
        logger.info(f"Contact {contact_id} deleted")

        if self.activity_log:
            self.activity_log.record(
                LogType.CONTACT_DELETED,
                f"Contact {contact_id} was deleted",
                metadata={"contactId": contact_id},
            )

    def get_contact(self, contact_id: str) -> Contact:
        contact = self._to_contact(contact_id, self.store.get(f"{CONTACTS_PATH}/{contact_id}"))
        if contact is None:
            raise ResourceNotFoundError(f"Contact {contact_id} not found")
        return contact

    def list_contacts(self) -> List[Contact]:
        """All contacts in key order; malformed records are skipped"""
        contacts = []
        for contact_id, document in self.store.children(CONTACTS_PATH):
            contact = self._to_contact(contact_id, document)
            if contact is not None:
                contacts.append(contact)
        return contacts

    def recipients_for_nodes(self, node_ids: Iterable[str]) -> List[Contact]:
        """Contacts associated with any of ``node_ids``, in contact order"""
        node_ids = set(node_ids)
        return [contact for contact in self.list_contacts() if contact.watches_any(node_ids)]

    def recipient_phones(self, node_ids: Iterable[str]) -> List[str]:
        """De-duplicated phone numbers of ``recipients_for_nodes``"""
        phones: List[str] = []
        for contact in self.recipients_for_nodes(node_ids):
            if contact.phone not in phones:
                phones.append(contact.phone)
        return phones

    @staticmethod
    def _to_contact(contact_id: str, document) -> Optional[Contact]:
        if not isinstance(document, dict):
            return None
        document = {"id": contact_id, "createdAt": 0, "lastUpdated": 0, **document}
        try:
            return Contact.model_validate(document)
        except ValueError as e:
            logger.warning(f"Skipping malformed contact {contact_id}: {e}")
            return None
