"""Data access layer: one repository per aggregate, each bound to an AsyncSession."""

from healthle.repositories.consultations import (
    ConsultationNotFoundError,
    ConsultationRepository,
    QuestionnaireExistsError,
)
from healthle.repositories.content import (
    ContactRepository,
    LegalDocumentRepository,
    WebhookLogRepository,
)
from healthle.repositories.interviews import InterviewRepository
from healthle.repositories.orders import OrderRepository, VendorOrderRepository
from healthle.repositories.products import ProductRepository
from healthle.repositories.urgency import UrgencyRepository
from healthle.repositories.users import UserRepository
from healthle.repositories.vendors import VendorRepository

__all__ = [
    "ConsultationNotFoundError",
    "ConsultationRepository",
    "QuestionnaireExistsError",
    "ContactRepository",
    "LegalDocumentRepository",
    "WebhookLogRepository",
    "InterviewRepository",
    "OrderRepository",
    "VendorOrderRepository",
    "ProductRepository",
    "UrgencyRepository",
    "UserRepository",
    "VendorRepository",
]
