"""Grounded answer synthesis."""
from __future__ import annotations

from langchain_core.prompts import PromptTemplate

from .errors import GenerationError
from .llm_backend import TextBackend
from .observability import get_logger

logger = get_logger(__name__)

ANSWER_PROMPT = PromptTemplate.from_template(
    """You are "Databank AI", an information desk for teachers.
Answer the teacher's question based on the reference material below.

[Reference material]
{context}

[Question]
{question}

[Answer guidelines]
- Provide accurate, concise information suited to an internal knowledge base for teachers.
- Keep a polite, formal and knowledgeable tone.
- Do not open with remarks such as "according to the material" or "page X says". Absorb the material and answer naturally, as your own knowledge.
- Organize the relevant facts and any solution clearly.
- Do not use Markdown bold markup (**). Express emphasis with quotation marks or symbols such as "!" instead.
- Use bullet points where they make the information easier to scan.
"""
)


class AnswerGenerator:
    def __init__(self, prompt: PromptTemplate = ANSWER_PROMPT):
        self.prompt = prompt

    def build_prompt(self, question: str, context: str) -> str:
        return self.prompt.format(context=context, question=question)

    def answer(self, question: str, context: str, backend: TextBackend) -> str:
        """Calls the backend exactly once; failures are not retried."""
        prompt = self.build_prompt(question, context)
        try:
            return backend.generate(prompt)
        except Exception as exc:
            raise GenerationError(f"answer generation failed: {exc}") from exc
