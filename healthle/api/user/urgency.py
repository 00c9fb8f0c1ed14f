"""
Urgency triage endpoints: category questions and stored assessments.
"""

import logging
import re

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import DatabaseSession
from healthle.models.consultation import ConsultationStatus
from healthle.repositories.consultations import ConsultationRepository
from healthle.repositories.urgency import UrgencyRepository
from healthle.schemas.consultation import UrgencyAssessmentCreate, UrgencyQuestionsQuery

logger = logging.getLogger(__name__)

router = APIRouter(tags=["urgency"])

UUID4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


async def _questions(db, category_id: str | None):
    if not category_id:
        raise _bad_request("カテゴリーIDが必要です")
    questions = await UrgencyRepository(db).list_questions(category_id)
    return [question.to_dict() for question in questions]


@router.get("/api/urgency-questions")
async def list_urgency_questions(db: DatabaseSession, category_id: str | None = None):
    """Questions of an urgency category in display order."""
    return await _questions(db, category_id)


@router.post("/api/urgency-questions")
async def query_urgency_questions(request: UrgencyQuestionsQuery, db: DatabaseSession):
    return await _questions(db, request.category_id)


@router.post("/api/urgency-assessments")
async def create_assessment(request: UrgencyAssessmentCreate, db: DatabaseSession):
    """
    Store the urgency assessment of a medical interview.

    The consultation linked to the interview, if any, moves to ``matched``.

    Raises:
        HTTPException 400: interview_id missing or not a UUIDv4,
            category_id or urgency_level missing, or matched_question_ids
            not a list
    """
    interview_id = request.interview_id
    if not interview_id or interview_id == "undefined":
        raise _bad_request("interview_idが不正です")
    if not isinstance(interview_id, str) or not UUID4_RE.match(interview_id):
        raise _bad_request("interview_idの形式が不正です")
    if not request.category_id:
        raise _bad_request("category_idは必須です")
    if not isinstance(request.matched_question_ids, list):
        raise _bad_request("matched_question_idsは配列である必要があります")
    if not request.urgency_level:
        raise _bad_request("urgency_levelは必須です")

    assessment = await UrgencyRepository(db).create_assessment(
        interview_id=interview_id,
        category_id=str(request.category_id),
        matched_question_ids=request.matched_question_ids,
        urgency_level=str(request.urgency_level),
        recommended_departments=request.recommended_departments,
    )
    await ConsultationRepository(db).advance_by_interview(interview_id, ConsultationStatus.MATCHED)

    logger.info(
        "Urgency assessed",
        extra={"interview_id": interview_id, "urgency_level": assessment.urgency_level},
    )
    return assessment.to_dict()
