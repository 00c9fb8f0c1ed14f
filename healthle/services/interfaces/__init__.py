"""Service interface contracts (ABCs)"""

from healthle.services.interfaces.auth_provider import (
    AuthProviderError,
    AuthSession,
    AuthUser,
    IAuthProvider,
)
from healthle.services.interfaces.payment_gateway import (
    IPaymentGateway,
    PaymentGatewayError,
    WebhookSignatureError,
)
from healthle.services.interfaces.interview_ai import IInterviewAI, InterviewAIError

__all__ = [
    'AuthProviderError',
    'AuthSession',
    'AuthUser',
    'IAuthProvider',
    'IPaymentGateway',
    'PaymentGatewayError',
    'WebhookSignatureError',
    'IInterviewAI',
    'InterviewAIError',
]
