"""
Agents package for the Gemini-backed AI agents.

Each agent follows a consistent structure with agent.py and prompts.py.
"""

from agents.base import BaseAgent
from agents.embedding import EmbeddingClient
from agents.screening.agent import ResumeScore, ResumeScorer
from agents.assessment.agent import GeneratedAssessment, RAGQuestionGenerator

__all__ = [
    "BaseAgent",
    "EmbeddingClient",
    "GeneratedAssessment",
    "RAGQuestionGenerator",
    "ResumeScore",
    "ResumeScorer",
]
