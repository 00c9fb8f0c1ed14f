"""Request schemas for consultations, questionnaires and urgency triage."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ConsultationCreate(BaseModel):
    symptom_text: Optional[str] = None
    user_id: Optional[str] = None
    interview_id: Optional[str] = None


class FollowUpCreate(BaseModel):
    consultation_id: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    session_id: Optional[str] = None


class ResponseSave(BaseModel):
    consultation_id: Optional[str] = None
    ai_response_text: Optional[str] = None
    session_id: Optional[str] = None


class ConsultationUserUpdate(BaseModel):
    consultation_id: Optional[str] = None
    user_id: Optional[str] = None


class QuestionnaireCreate(BaseModel):
    """
    Questionnaire submission.

    Attributes:
        questions: Question strings or ``{"text", "type"}`` dicts
        answers: One answer per question, in the same order
    """
    consultation_id: str = Field(..., min_length=1)
    questions: List[Any]
    answers: List[Any]


class UrgencyQuestionsQuery(BaseModel):
    category_id: Optional[str] = None


class UrgencyAssessmentCreate(BaseModel):
    """
    Urgency assessment of a medical interview.

    Values are typed loosely; the handler validates each one and answers
    with a field-specific message.
    """
    interview_id: Optional[Any] = None
    category_id: Optional[Any] = None
    matched_question_ids: Optional[Any] = None
    urgency_level: Optional[Any] = None
    recommended_departments: Optional[List[Any]] = None
