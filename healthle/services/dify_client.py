"""
Interview AI client (Dify apps).

Two apps back the medical interview:
- a completion app that turns a symptom description into questions,
  answering with a JSON document (often inside a ```json fence)
- a chat app that analyzes the answered questions and returns advice
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from healthle.core.config import settings
from healthle.services.interfaces.interview_ai import IInterviewAI, InterviewAIError

logger = logging.getLogger(__name__)

ANALYSIS_QUERY = "以下の症状と質問への回答を分析して、適切なアドバイスを提供してください"

_FENCE_RE = re.compile(r"```json\n|\n```")
_WHITESPACE_RE = re.compile(r"\s+")


def parse_questions(answer: str) -> List[Dict[str, Any]]:
    """
    Parse the completion app's answer into a question list.

    Raises:
        InterviewAIError: When the answer is not JSON or has no ``questions`` list
    """
    cleaned = _WHITESPACE_RE.sub(" ", _FENCE_RE.sub("", answer or "")).strip()
    try:
        questions = json.loads(cleaned).get("questions")
    except (ValueError, AttributeError) as e:
        raise InterviewAIError("質問データの解析に失敗しました") from e
    if not isinstance(questions, list):
        raise InterviewAIError("質問データの解析に失敗しました")
    return questions


class DifyClient(IInterviewAI):
    """Dify client built on httpx."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        question_api_key: Optional[str] = None,
        answer_api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = (api_url or settings.dify_api_url).rstrip("/")
        self.question_api_key = question_api_key or settings.dify_question_api_key
        self.answer_api_key = answer_api_key or settings.dify_answer_api_key
        # Blocking completions are slow; allow four times the default
        self.timeout = timeout or settings.http_timeout_seconds * 4
        self._transport = transport

    async def _post(self, path: str, api_key: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    path,
                    headers={"Authorization": f"Bearer {api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Interview AI request failed: {e}", extra={"dify_path": path})
            raise InterviewAIError(f"回答の分析中にエラーが発生しました: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "Interview AI rejected request",
                extra={"dify_path": path, "status_code": response.status_code},
            )
            raise InterviewAIError(f"Dify API error: {response.text}")

        try:
            return response.json()
        except ValueError as e:
            raise InterviewAIError("回答の分析結果が不正な形式です") from e

    async def generate_questions(self, symptom_text: str) -> List[Dict[str, Any]]:
        data = await self._post(
            "/completion-messages",
            self.question_api_key,
            {
                "inputs": {"symptom": symptom_text},
                "response_mode": "blocking",
                "user": "anonymous",
            },
        )
        questions = parse_questions(data.get("answer", ""))
        logger.info("Interview questions generated", extra={"question_count": len(questions)})
        return questions

    async def analyze_answers(
        self,
        conversation_user: str,
        symptom_text: str,
        qa_pairs: List[Dict[str, Any]],
    ) -> str:
        data = await self._post(
            "/chat-messages",
            self.answer_api_key,
            {
                "inputs": {"symptom": symptom_text, "questions": qa_pairs},
                "query": ANALYSIS_QUERY,
                "response_mode": "blocking",
                "user": conversation_user,
            },
        )
        answer = data.get("answer")
        if not isinstance(answer, str):
            raise InterviewAIError("回答の分析結果が不正な形式です")
        return answer
