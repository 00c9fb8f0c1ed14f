"""
Consultation models.

A consultation starts from the user's symptom text, collects a
questionnaire, is matched to an urgency category and ends with the AI
response. ``ConsultationStatus`` encodes that order.

Medical interviews are the AI-driven variant: generated questions,
answers stored inline and an analysis written back by the AI service.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from healthle.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class ConsultationStatus:
    """
    Forward-only consultation lifecycle.

    pending -> answered (questionnaire saved) -> matched (urgency
    assessment recorded) -> resolved (AI response saved)
    """
    PENDING = "pending"
    ANSWERED = "answered"
    MATCHED = "matched"
    RESOLVED = "resolved"

    ORDER = (PENDING, ANSWERED, MATCHED, RESOLVED)

    @classmethod
    def advance(cls, current: str | None, target: str) -> str:
        """
        Return the status after moving towards ``target``.

        Moving backwards (or to an unknown state) keeps ``current``.
        """
        if target not in cls.ORDER:
            raise ValueError(f"Unknown consultation status: {target}")
        if current not in cls.ORDER:
            return target
        if cls.ORDER.index(target) > cls.ORDER.index(current):
            return target
        return current


class InterviewStatus:
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Consultation(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Symptom consultation submitted from the user portal."""

    __tablename__ = "consultations"

    user_id = Column(String, nullable=True, index=True)
    symptom_text = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=ConsultationStatus.PENDING)
    ai_response_text = Column(Text, nullable=True)
    session_id = Column(String(255), nullable=True)
    interview_id = Column(String, nullable=True, index=True)


class Questionnaire(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """One questionnaire per consultation."""

    __tablename__ = "questionnaires"

    consultation_id = Column(
        String,
        ForeignKey("consultations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    questions = relationship(
        "Question",
        back_populates="questionnaire",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )


class Question(Base, UUIDMixin, TimestampMixin, ModelMixin):
    __tablename__ = "questions"

    questionnaire_id = Column(
        String,
        ForeignKey("questionnaires.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(50), nullable=False, default="text")

    questionnaire = relationship("Questionnaire", back_populates="questions")
    answers = relationship(
        "QuestionAnswer",
        back_populates="question",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class QuestionAnswer(Base, UUIDMixin, TimestampMixin, ModelMixin):
    __tablename__ = "question_answers"

    question_id = Column(
        String,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    answer_value = Column(Text, nullable=True)

    question = relationship("Question", back_populates="answers")


class FollowUpConversation(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Follow-up question and answer exchanged after the AI response."""

    __tablename__ = "follow_up_conversations"

    consultation_id = Column(
        String,
        ForeignKey("consultations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String, nullable=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)


class MedicalInterview(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    AI medical interview.

    ``questions`` and ``answers`` hold the full lists; the first ten
    pairs are also copied to question_n / answer_n for reporting.
    """

    __tablename__ = "medical_interviews"

    MAX_INLINE_ANSWERS = 10

    user_id = Column(String, nullable=True, index=True)
    symptom_text = Column(Text, nullable=True)
    consultation_text = Column(Text, nullable=True)
    questions = Column(JSON, nullable=True)
    answers = Column(JSON, nullable=True)
    ai_response_text = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=InterviewStatus.IN_PROGRESS)
    matched_categories = Column(JSON, nullable=True)
    is_child = Column(Boolean, nullable=False, default=False)
    last_response_at = Column(String, nullable=True)

    question_1 = Column(Text, nullable=True)
    question_2 = Column(Text, nullable=True)
    question_3 = Column(Text, nullable=True)
    question_4 = Column(Text, nullable=True)
    question_5 = Column(Text, nullable=True)
    question_6 = Column(Text, nullable=True)
    question_7 = Column(Text, nullable=True)
    question_8 = Column(Text, nullable=True)
    question_9 = Column(Text, nullable=True)
    question_10 = Column(Text, nullable=True)
    answer_1 = Column(Text, nullable=True)
    answer_2 = Column(Text, nullable=True)
    answer_3 = Column(Text, nullable=True)
    answer_4 = Column(Text, nullable=True)
    answer_5 = Column(Text, nullable=True)
    answer_6 = Column(Text, nullable=True)
    answer_7 = Column(Text, nullable=True)
    answer_8 = Column(Text, nullable=True)
    answer_9 = Column(Text, nullable=True)
    answer_10 = Column(Text, nullable=True)
