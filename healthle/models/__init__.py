"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from healthle.models.base import Base
from healthle.models.user import AdminUser, User, UserProfile, UserType
from healthle.models.vendor import (
    PharmacistCertification,
    Vendor,
    VendorPharmacist,
    VendorStaffRole,
    VendorUser,
)
from healthle.models.product import Product
from healthle.models.order import Order, OrderItem, OrderStatus, VendorOrder
from healthle.models.consultation import (
    Consultation,
    ConsultationStatus,
    FollowUpConversation,
    InterviewStatus,
    MedicalInterview,
    Question,
    QuestionAnswer,
    Questionnaire,
)
from healthle.models.urgency import UrgencyAssessment, UrgencyQuestion
from healthle.models.content import Contact, LegalDocument, WebhookLog

__all__ = [
    "Base",
    "AdminUser",
    "User",
    "UserProfile",
    "UserType",
    "PharmacistCertification",
    "Vendor",
    "VendorPharmacist",
    "VendorStaffRole",
    "VendorUser",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "VendorOrder",
    "Consultation",
    "ConsultationStatus",
    "FollowUpConversation",
    "InterviewStatus",
    "MedicalInterview",
    "Question",
    "QuestionAnswer",
    "Questionnaire",
    "UrgencyAssessment",
    "UrgencyQuestion",
    "Contact",
    "LegalDocument",
    "WebhookLog",
]
