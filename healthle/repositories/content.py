"""
Content repositories: contact inquiries, legal documents and the
payment webhook processing log.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.base import utc_now_iso
from healthle.models.content import Contact, LegalDocument, WebhookLog


class ContactRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields: Any) -> Contact:
        contact = Contact(status="pending", **fields)
        self.session.add(contact)
        await self.session.flush()
        return contact


class LegalDocumentRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_type(self, doc_type: str) -> Optional[LegalDocument]:
        result = await self.session.execute(
            select(LegalDocument).where(LegalDocument.type == doc_type)
        )
        return result.scalar_one_or_none()


class WebhookLogRepository:
    """
    Processing log of webhook events.

    A row is written as ``processing`` when the event arrives and closed
    as ``success`` or ``failed`` once handling ends.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, log_id: str) -> Optional[WebhookLog]:
        result = await self.session.execute(select(WebhookLog).where(WebhookLog.id == log_id))
        return result.scalar_one_or_none()

    async def start(self, event_id: str, event_type: str) -> WebhookLog:
        log = WebhookLog(
            stripe_event_id=event_id,
            event_type=event_type,
            status=WebhookLog.PROCESSING,
            processed_at=utc_now_iso(),
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def mark_success(self, log: WebhookLog, processed_data: Optional[Dict[str, Any]] = None) -> WebhookLog:
        log.status = WebhookLog.SUCCESS
        log.processed_data = processed_data
        log.processed_at = utc_now_iso()
        await self.session.flush()
        return log

    async def mark_failed(self, log: WebhookLog, error_message: str) -> WebhookLog:
        log.status = WebhookLog.FAILED
        log.error_message = error_message
        log.processed_at = utc_now_iso()
        await self.session.flush()
        return log
