"""
Urgency triage repository: per-category questions and stored assessments.
"""

from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.urgency import UrgencyAssessment, UrgencyQuestion


class UrgencyRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_questions(self, category_id: str) -> list[UrgencyQuestion]:
        """Questions of a category in display order."""
        result = await self.session.execute(
            select(UrgencyQuestion)
            .where(UrgencyQuestion.category_id == category_id)
            .order_by(UrgencyQuestion.display_order)
        )
        return list(result.scalars().all())

    async def create_assessment(
        self,
        interview_id: str,
        category_id: str,
        matched_question_ids: List[Any],
        urgency_level: str,
        recommended_departments: Optional[List[Any]] = None,
    ) -> UrgencyAssessment:
        assessment = UrgencyAssessment(
            interview_id=interview_id,
            category_id=category_id,
            matched_question_ids=matched_question_ids,
            urgency_level=urgency_level,
            recommended_departments=recommended_departments or [],
        )
        self.session.add(assessment)
        await self.session.flush()
        return assessment
