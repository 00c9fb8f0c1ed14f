"""
Interview AI Interface (IInterviewAI)

Abstract base class for the AI service behind medical interviews:
question generation from symptom text, and analysis of the answers.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class InterviewAIError(Exception):
    """Raised when the AI service fails or returns an unusable payload."""


class IInterviewAI(ABC):

    @abstractmethod
    async def generate_questions(self, symptom_text: str) -> List[Dict[str, Any]]:
        """
        Generate interview questions for a symptom description.

        Returns:
            List of question dicts as produced by the AI app
            (at least a ``text`` key each)

        Raises:
            InterviewAIError: On API failure or malformed output
        """

    @abstractmethod
    async def analyze_answers(
        self,
        conversation_user: str,
        symptom_text: str,
        qa_pairs: List[Dict[str, Any]],
    ) -> str:
        """
        Analyze interview answers and return advice text.

        Args:
            conversation_user: Stable user key for the AI conversation
                (the interview id)
            symptom_text: Original symptom description
            qa_pairs: ``[{"question": ..., "answer": ...}, ...]``

        Raises:
            InterviewAIError: On API failure or malformed output
        """
