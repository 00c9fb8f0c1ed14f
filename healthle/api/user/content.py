"""Contact form and legal document endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import DatabaseSession
from healthle.repositories.content import ContactRepository, LegalDocumentRepository
from healthle.schemas.content import ContactCreate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["content"])


@router.post("/api/contact")
async def submit_contact(request: ContactCreate, db: DatabaseSession):
    """Store an inquiry as ``pending`` for the support team."""
    contact = await ContactRepository(db).create(**request.model_dump())
    logger.info("Contact inquiry received", extra={"contact_id": contact.id, "type": contact.type})
    return {"message": "お問い合わせを受け付けました"}


@router.get("/api/legal-documents")
async def get_legal_document(db: DatabaseSession, type: Optional[str] = None):
    if not type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Type parameter is required")

    document = await LegalDocumentRepository(db).get_by_type(type)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document.to_dict()
