"""
Urgency triage models.

Each urgency category has an ordered list of yes/no questions; the
frontend matches answers to a category and stores the resulting
assessment against the medical interview.
"""

from sqlalchemy import Column, Integer, JSON, String, Text

from healthle.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class UrgencyQuestion(Base, UUIDMixin, TimestampMixin, ModelMixin):
    __tablename__ = "urgency_questions"

    category_id = Column(String, nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    urgency_level = Column(String(20), nullable=True)


class UrgencyAssessment(Base, UUIDMixin, TimestampMixin, ModelMixin):
    __tablename__ = "urgency_assessments"

    interview_id = Column(String, nullable=False, index=True)
    category_id = Column(String, nullable=False)
    matched_question_ids = Column(JSON, nullable=False, default=list)
    urgency_level = Column(String(20), nullable=False)
    recommended_departments = Column(JSON, nullable=False, default=list)
