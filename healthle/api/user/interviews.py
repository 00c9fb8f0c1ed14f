"""
AI medical interview endpoints.

An interview starts from the symptom text, gets AI-generated questions
(``/api/question``), and is completed when the answers are analyzed by
the AI service (``/api/answers``).
"""

import logging

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import DatabaseSession, InterviewAI, OptionalUser
from healthle.core.errors import error_detail
from healthle.repositories.consultations import ConsultationRepository
from healthle.repositories.interviews import InterviewRepository, question_text
from healthle.schemas.interview import (
    AnswersSubmit,
    InterviewCreate,
    InterviewCreateForUser,
    InterviewTriageUpdate,
    QuestionRequest,
)
from healthle.services.interfaces.interview_ai import InterviewAIError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["interviews"])

INTERVIEW_NOT_FOUND = "問診データが見つかりません"


@router.post("/api/interviews")
async def start_interview(request: InterviewCreate, db: DatabaseSession, current_user: OptionalUser):
    """
    Create an ``in_progress`` interview for the caller (or anonymously).

    With ``consultation_id`` the consultation is linked to the interview,
    so its urgency assessment moves the consultation to ``matched``.
    """
    if not request.symptom_text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="症状の説明が必要です")

    consultations = ConsultationRepository(db)
    consultation = None
    if request.consultation_id:
        consultation = await consultations.get(request.consultation_id)
        if consultation is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="相談が見つかりません")

    interview = await InterviewRepository(db).create(
        symptom_text=request.symptom_text,
        user_id=current_user.id if current_user else None,
    )
    if consultation is not None:
        await consultations.link_interview(consultation, interview.id)
    logger.info("Interview started", extra={"interview_id": interview.id})
    return {"interview_id": interview.id}


@router.get("/api/interviews")
async def get_interview(db: DatabaseSession, id: str | None = None):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="問診IDが必要です")

    interview = await InterviewRepository(db).get(id)
    if interview is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INTERVIEW_NOT_FOUND)
    return interview.to_dict()


@router.post("/api/interviews/create")
async def create_interview_for_user(request: InterviewCreateForUser, db: DatabaseSession):
    if not request.user_id or not request.consultation_text:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ユーザーIDと相談内容は必須です",
        )

    interview = await InterviewRepository(db).create(
        user_id=request.user_id,
        consultation_text=request.consultation_text,
        questions=request.questions,
    )
    return {"id": interview.id}


@router.patch("/api/interviews/{interview_id}")
async def update_interview_triage(
    interview_id: str,
    request: InterviewTriageUpdate,
    db: DatabaseSession,
):
    """Record the urgency categories matched for the interview."""
    repo = InterviewRepository(db)
    interview = await repo.get(interview_id)
    if interview is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INTERVIEW_NOT_FOUND)

    interview = await repo.update_triage(
        interview,
        matched_categories=request.matched_categories,
        is_child=request.is_child,
    )
    return interview.to_dict()


@router.post("/api/question")
async def generate_questions(request: QuestionRequest, interview_ai: InterviewAI):
    """
    Generate interview questions for the symptom text.

    Raises:
        HTTPException 400: No symptom text
        HTTPException 500: The AI call failed or returned unusable output
    """
    if not request.symptom_text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="相談内容が入力されていません")

    try:
        questions = await interview_ai.generate_questions(request.symptom_text)
    except InterviewAIError as e:
        logger.error(f"Question generation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail(str(e), e.__cause__),
        )
    return {"questions": questions}


@router.post("/api/answers")
async def submit_answers(request: AnswersSubmit, db: DatabaseSession, interview_ai: InterviewAI):
    """
    Store the interview answers and the AI analysis.

    The first ten question/answer pairs are also kept in the
    question_n / answer_n columns.

    Raises:
        HTTPException 400: interview_id, questions or answers missing
        HTTPException 404: Unknown interview
        HTTPException 500: The AI analysis failed
    """
    if not request.interview_id or request.questions is None or request.answers is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="必要なデータが不足しています")

    repo = InterviewRepository(db)
    interview = await repo.get(request.interview_id)
    if interview is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INTERVIEW_NOT_FOUND)

    await repo.store_answers(interview, request.questions, request.answers)

    qa_pairs = [
        {
            "question": question_text(question),
            "answer": request.answers[index] if index < len(request.answers) else None,
        }
        for index, question in enumerate(request.questions)
    ]
    try:
        analysis = await interview_ai.analyze_answers(
            conversation_user=interview.id,
            symptom_text=interview.symptom_text or "",
            qa_pairs=qa_pairs,
        )
    except InterviewAIError as e:
        logger.error(f"Answer analysis failed: {e}", extra={"interview_id": interview.id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail(f"回答の分析に失敗しました: {e}", e.__cause__),
        )

    await repo.complete(interview, analysis)
    logger.info("Interview completed", extra={"interview_id": interview.id})
    return {"interview_id": interview.id}
