"""
Medical interview repository.
"""

from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.base import utc_now_iso
from healthle.models.consultation import InterviewStatus, MedicalInterview


def question_text(question: Any) -> Optional[str]:
    """Text of an AI-generated question (dict with ``text``) or a plain string."""
    if isinstance(question, dict):
        return question.get("text") or question.get("question")
    return None if question is None else str(question)


class InterviewRepository:
    """Repository for ``medical_interviews``."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, interview_id: str) -> Optional[MedicalInterview]:
        result = await self.session.execute(
            select(MedicalInterview).where(MedicalInterview.id == interview_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        symptom_text: Optional[str] = None,
        user_id: Optional[str] = None,
        consultation_text: Optional[str] = None,
        questions: Optional[List[Any]] = None,
    ) -> MedicalInterview:
        interview = MedicalInterview(
            user_id=user_id,
            symptom_text=symptom_text,
            consultation_text=consultation_text,
            questions=questions,
            status=InterviewStatus.IN_PROGRESS,
        )
        self.session.add(interview)
        await self.session.flush()
        return interview

    async def list_completed_for_user(self, user_id: str) -> list[MedicalInterview]:
        """Completed interviews with an AI response, newest first."""
        result = await self.session.execute(
            select(MedicalInterview)
            .where(
                MedicalInterview.user_id == user_id,
                MedicalInterview.status == InterviewStatus.COMPLETED,
                MedicalInterview.ai_response_text.is_not(None),
            )
            .order_by(MedicalInterview.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_triage(
        self,
        interview: MedicalInterview,
        matched_categories: Optional[List[Any]] = None,
        is_child: Optional[bool] = None,
    ) -> MedicalInterview:
        interview.matched_categories = matched_categories or []
        interview.is_child = bool(is_child)
        interview.updated_at = utc_now_iso()
        await self.session.flush()
        return interview

    async def store_answers(
        self,
        interview: MedicalInterview,
        questions: List[Any],
        answers: List[Any],
    ) -> MedicalInterview:
        """
        Store the full Q/A lists and copy the first ten pairs into the
        question_n / answer_n columns.
        """
        interview.questions = questions
        interview.answers = answers
        limit = MedicalInterview.MAX_INLINE_ANSWERS
        for index, question in enumerate(questions[:limit], start=1):
            answer = answers[index - 1] if index - 1 < len(answers) else None
            setattr(interview, f"question_{index}", question_text(question))
            setattr(interview, f"answer_{index}", None if answer is None else str(answer))
        interview.updated_at = utc_now_iso()
        await self.session.flush()
        return interview

    async def complete(self, interview: MedicalInterview, ai_response_text: str) -> MedicalInterview:
        now = utc_now_iso()
        interview.ai_response_text = ai_response_text
        interview.status = InterviewStatus.COMPLETED
        interview.last_response_at = now
        interview.updated_at = now
        await self.session.flush()
        return interview
