"""Request schemas for AI medical interviews."""

from typing import Any, List, Optional

from pydantic import BaseModel


class InterviewCreate(BaseModel):
    symptom_text: Optional[str] = None
    consultation_id: Optional[str] = None


class InterviewCreateForUser(BaseModel):
    user_id: Optional[str] = None
    consultation_text: Optional[str] = None
    questions: Optional[List[Any]] = None


class InterviewTriageUpdate(BaseModel):
    matched_categories: Optional[List[Any]] = None
    is_child: Optional[bool] = None


class QuestionRequest(BaseModel):
    symptom_text: Optional[str] = None


class AnswersSubmit(BaseModel):
    interview_id: Optional[str] = None
    questions: Optional[List[Any]] = None
    answers: Optional[List[Any]] = None
