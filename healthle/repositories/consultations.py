"""
Consultation repository.

Owns the consultation lifecycle: creation, questionnaire submission,
follow-up conversations and the AI response. Status changes go through
``advance_status`` so a consultation never moves backwards.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.base import utc_now_iso
from healthle.models.consultation import (
    Consultation,
    ConsultationStatus,
    FollowUpConversation,
    Question,
    QuestionAnswer,
    Questionnaire,
)

logger = logging.getLogger(__name__)


class QuestionnaireExistsError(Exception):
    """Raised when a consultation already has a questionnaire."""


class ConsultationNotFoundError(Exception):
    """Raised when the consultation being written to does not exist."""


def _question_fields(question: Any) -> Dict[str, str]:
    """Accept a plain string or a ``{"text"|"question_text", "type"}`` dict."""
    if isinstance(question, dict):
        return {
            "question_text": str(question.get("question_text") or question.get("text") or ""),
            "question_type": str(question.get("question_type") or question.get("type") or "text"),
        }
    return {"question_text": str(question), "question_type": "text"}


class ConsultationRepository:
    """
    Repository for consultations and their questionnaires.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, consultation_id: str) -> Optional[Consultation]:
        result = await self.session.execute(
            select(Consultation).where(Consultation.id == consultation_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        symptom_text: str,
        user_id: Optional[str] = None,
        interview_id: Optional[str] = None,
    ) -> Consultation:
        consultation = Consultation(
            user_id=user_id,
            symptom_text=symptom_text,
            interview_id=interview_id,
            status=ConsultationStatus.PENDING,
        )
        self.session.add(consultation)
        await self.session.flush()
        logger.info("Consultation created", extra={"consultation_id": consultation.id})
        return consultation

    async def advance_status(self, consultation: Consultation, target: str) -> Consultation:
        """Move the consultation towards ``target``; backward moves are ignored."""
        new_status = ConsultationStatus.advance(consultation.status, target)
        if new_status != consultation.status:
            logger.info(
                "Consultation status changed",
                extra={
                    "consultation_id": consultation.id,
                    "from_status": consultation.status,
                    "to_status": new_status,
                },
            )
            consultation.status = new_status
            consultation.updated_at = utc_now_iso()
            await self.session.flush()
        return consultation

    async def link_interview(self, consultation: Consultation, interview_id: str) -> Consultation:
        consultation.interview_id = interview_id
        consultation.updated_at = utc_now_iso()
        await self.session.flush()
        return consultation

    async def advance_by_interview(self, interview_id: str, target: str) -> Optional[Consultation]:
        """Advance the consultation linked to a medical interview, if any."""
        result = await self.session.execute(
            select(Consultation).where(Consultation.interview_id == interview_id)
        )
        consultation = result.scalars().first()
        if consultation is None:
            return None
        return await self.advance_status(consultation, target)

    async def save_response(
        self,
        consultation: Consultation,
        ai_response_text: str,
        session_id: Optional[str] = None,
    ) -> Consultation:
        consultation.ai_response_text = ai_response_text
        if session_id:
            consultation.session_id = session_id
        consultation.updated_at = utc_now_iso()
        return await self.advance_status(consultation, ConsultationStatus.RESOLVED)

    async def assign_user(self, consultation: Consultation, user_id: str) -> Consultation:
        consultation.user_id = user_id
        consultation.updated_at = utc_now_iso()
        await self.session.flush()
        return consultation

    async def add_follow_up(
        self,
        consultation_id: str,
        question: str,
        answer: str,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> FollowUpConversation:
        """
        Store a follow-up exchange; ``session_id`` is also written to the
        consultation.

        Raises:
            ConsultationNotFoundError: Unknown consultation
        """
        consultation = await self.get(consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(consultation_id)

        follow_up = FollowUpConversation(
            consultation_id=consultation_id,
            user_id=user_id,
            question=question,
            answer=answer,
        )
        self.session.add(follow_up)

        if session_id:
            consultation.session_id = session_id
            consultation.updated_at = utc_now_iso()

        await self.session.flush()
        return follow_up

    async def has_questionnaire(self, consultation_id: str) -> bool:
        result = await self.session.execute(
            select(Questionnaire.id).where(Questionnaire.consultation_id == consultation_id)
        )
        return result.first() is not None

    async def save_questionnaire(
        self,
        consultation_id: str,
        questions: List[Any],
        answers: List[Any],
    ) -> Questionnaire:
        """
        Store a questionnaire with its questions and answers.

        Everything is written in the caller's transaction: the questionnaire,
        one question per entry (in order) with its answer, and the
        consultation's move to ``answered``.

        Args:
            consultation_id: Consultation being answered
            questions: Question strings or dicts
            answers: Answer per question (same length)

        Returns:
            The new Questionnaire

        Raises:
            ConsultationNotFoundError: Unknown consultation
            QuestionnaireExistsError: The consultation already has one
            ValueError: questions and answers differ in length
        """
        if len(questions) != len(answers):
            raise ValueError("questions and answers must have the same length")

        consultation = await self.get(consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(consultation_id)

        if await self.has_questionnaire(consultation_id):
            raise QuestionnaireExistsError(consultation_id)

        questionnaire = Questionnaire(consultation_id=consultation_id)
        self.session.add(questionnaire)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # concurrent submission won the unique consultation_id
            raise QuestionnaireExistsError(consultation_id) from e

        for position, (question, answer) in enumerate(zip(questions, answers)):
            row = Question(
                questionnaire_id=questionnaire.id,
                position=position,
                **_question_fields(question),
            )
            self.session.add(row)
            await self.session.flush()
            self.session.add(QuestionAnswer(
                question_id=row.id,
                answer_value=None if answer is None else str(answer),
            ))

        await self.session.flush()
        await self.advance_status(consultation, ConsultationStatus.ANSWERED)
        return questionnaire

    async def list_questions_with_answers(self, consultation_id: str) -> List[Dict[str, Any]]:
        """
        Questions of the consultation's questionnaire, in order, each with
        its first answer.
        """
        result = await self.session.execute(
            select(Question)
            .join(Questionnaire, Question.questionnaire_id == Questionnaire.id)
            .where(Questionnaire.consultation_id == consultation_id)
            .order_by(Question.position)
        )
        return [
            {
                "id": question.id,
                "question_text": question.question_text,
                "question_type": question.question_type,
                "answer_value": question.answers[0].answer_value if question.answers else None,
            }
            for question in result.scalars().all()
        ]
