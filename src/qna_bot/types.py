"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar


class ActivityType:
    """Activity type names used by the host framework."""

    MESSAGE = "message"
    CONVERSATION_UPDATE = "conversationUpdate"
    TYPING = "typing"


@dataclass(slots=True, frozen=True)
class InboundMessage:
    """One inbound activity delivered by the host for a single turn."""

    type: str
    text: str | None = None

    @property
    def is_message(self) -> bool:
        return self.type == ActivityType.MESSAGE


@dataclass(slots=True, frozen=True)
class ScoredAnswer:
    """A ranked answer returned by the scoring oracle."""

    answer_text: str
    score: float
    matched_questions: tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class TelemetryEvent:
    """Record of one answered query, shipped to the telemetry sink."""

    query_text: str
    score: str
    matched_question: str
    answer_text: str

    name: ClassVar[str] = "QnA"

    @classmethod
    def from_answer(cls, query_text: str, answer: ScoredAnswer) -> "TelemetryEvent":
        matched = answer.matched_questions[0] if answer.matched_questions else ""
        return cls(
            query_text=query_text,
            score=str(answer.score),
            matched_question=matched,
            answer_text=answer.answer_text,
        )

    def to_properties(self) -> dict[str, str]:
        return {
            "QnA_query": self.query_text,
            "QnA_ScoringQuery": self.score,
            "QnA_Question": self.matched_question,
            "QnA_Answer": self.answer_text,
        }
