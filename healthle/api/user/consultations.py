"""
Consultation and questionnaire endpoints.

Consultation status only moves forward (pending, answered, matched,
resolved); see ConsultationStatus.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import CurrentUser, DatabaseSession, OptionalUser
from healthle.repositories.consultations import (
    ConsultationNotFoundError,
    ConsultationRepository,
    QuestionnaireExistsError,
)
from healthle.repositories.interviews import InterviewRepository
from healthle.schemas.consultation import (
    ConsultationCreate,
    ConsultationUserUpdate,
    FollowUpCreate,
    QuestionnaireCreate,
    ResponseSave,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["consultations"])

MISSING_FIELDS = "Missing required fields"
CONSULTATION_NOT_FOUND = "相談が見つかりません"


@router.post("/api/consultations")
async def create_consultation(
    request: ConsultationCreate,
    db: DatabaseSession,
    current_user: OptionalUser,
):
    """Start a consultation from the user's symptom description."""
    if not request.symptom_text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="相談内容を入力してください")

    user_id = request.user_id or (current_user.id if current_user else None)
    consultation = await ConsultationRepository(db).create(
        request.symptom_text,
        user_id=user_id,
        interview_id=request.interview_id,
    )
    return {
        "consultation_id": consultation.id,
        "user_id": consultation.user_id,
        "symptom_text": consultation.symptom_text,
        "interview_id": consultation.interview_id,
    }


@router.get("/api/consultations/list")
async def list_consultations(db: DatabaseSession, current_user: CurrentUser):
    """The caller's completed AI interviews, newest first."""
    interviews = await InterviewRepository(db).list_completed_for_user(current_user.id)
    return [
        {
            "id": interview.id,
            "created_at": interview.created_at,
            "status": interview.status,
            "title": interview.symptom_text or "症状の相談",
            "last_message": interview.ai_response_text or "相談内容を確認中",
        }
        for interview in interviews
    ]


@router.post("/api/consultations/follow-up")
async def add_follow_up(request: FollowUpCreate, db: DatabaseSession, current_user: OptionalUser):
    """
    Store a follow-up exchange.

    Attributed to the bearer user when one is signed in.
    """
    if not request.consultation_id or not request.question or not request.answer:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_FIELDS)

    try:
        await ConsultationRepository(db).add_follow_up(
            request.consultation_id,
            question=request.question,
            answer=request.answer,
            user_id=current_user.id if current_user else None,
            session_id=request.session_id,
        )
    except ConsultationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CONSULTATION_NOT_FOUND)
    return {"success": True}


@router.post("/api/consultations/save-response")
async def save_response(request: ResponseSave, db: DatabaseSession):
    """Store the AI response and resolve the consultation."""
    if not request.consultation_id or not request.ai_response_text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_FIELDS)

    repo = ConsultationRepository(db)
    consultation = await repo.get(request.consultation_id)
    if consultation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CONSULTATION_NOT_FOUND)

    await repo.save_response(consultation, request.ai_response_text, session_id=request.session_id)
    return {"success": True}


@router.post("/api/consultations/update-user")
async def update_consultation_user(request: ConsultationUserUpdate, db: DatabaseSession):
    if not request.consultation_id or not request.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_FIELDS)

    repo = ConsultationRepository(db)
    consultation = await repo.get(request.consultation_id)
    if consultation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CONSULTATION_NOT_FOUND)

    await repo.assign_user(consultation, request.user_id)
    return {"success": True}


@router.get("/api/consultations/{consultation_id}")
async def get_consultation(consultation_id: str, db: DatabaseSession):
    """Consultation with its questionnaire questions and answers."""
    repo = ConsultationRepository(db)
    consultation = await repo.get(consultation_id)
    if consultation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CONSULTATION_NOT_FOUND)

    return {
        "consultation": consultation.to_dict(),
        "questions": await repo.list_questions_with_answers(consultation_id),
    }


@router.post("/api/questionnaires")
async def create_questionnaire(request: QuestionnaireCreate, db: DatabaseSession):
    """
    Submit a consultation's questionnaire.

    The questionnaire, its questions, the answers and the move to
    ``answered`` are written in one transaction.

    Raises:
        HTTPException 400: Unknown consultation, or questions and answers
            differ in length
        HTTPException 409: The consultation already has a questionnaire
    """
    try:
        questionnaire = await ConsultationRepository(db).save_questionnaire(
            request.consultation_id,
            request.questions,
            request.answers,
        )
    except QuestionnaireExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="既にこの相談に対する質問票が存在します",
        )
    except ConsultationNotFoundError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=CONSULTATION_NOT_FOUND)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="質問と回答の数が一致しません",
        )

    logger.info(
        "Questionnaire saved",
        extra={"consultation_id": request.consultation_id, "questionnaire_id": questionnaire.id},
    )
    return {"success": True, "questionnaire_id": questionnaire.id}
