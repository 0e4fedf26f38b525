"""
Contact Endpoints
POST   /api/v1/contacts - Add a contact
GET    /api/v1/contacts - List contacts
DELETE /api/v1/contacts/{contact_id} - Delete a contact
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status as http_status
from pydantic import BaseModel, ConfigDict, Field

from cloudburst.api.dependencies import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["contacts"])


class ContactRequest(BaseModel):
    """Request model for adding a contact"""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field("", description="Contact name")
    phone: str = Field("", description="10-digit Indian mobile number, optionally 91-prefixed")
    email: Optional[str] = None
    associated_nodes: List[str] = Field(default_factory=list, alias="associatedNodes")
    notification_preference: str = Field("sms", alias="notificationPreference")


@router.post("/contacts", status_code=http_status.HTTP_201_CREATED, summary="Add contact")
async def add_contact(
    request: ContactRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    contact = container.contact_registry.add_contact(
        name=request.name,
        phone=request.phone,
        email=request.email,
        associated_node_ids=request.associated_nodes,
        preference=request.notification_preference,
    )
    return contact.to_document()


@router.get("/contacts", summary="List contacts")
async def list_contacts(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    contacts = container.contact_registry.list_contacts()
    return {
        "total": len(contacts),
        "contacts": [contact.to_document() for contact in contacts],
    }


@router.delete("/contacts/{contact_id}", summary="Delete contact")
async def delete_contact(
    contact_id: str,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    container.contact_registry.delete_contact(contact_id)
    return {"status": "deleted", "id": contact_id}
