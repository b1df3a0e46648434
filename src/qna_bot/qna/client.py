"""Scoring oracle abstraction and the QnA Maker REST client."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from qna_bot.config import QnAMakerSettings
from qna_bot.types import ScoredAnswer


class QnAServiceError(RuntimeError):
    """Raised when the QnA service cannot be reached or rejects a query."""


class ScoringOracle(ABC):
    """Returns ranked candidate answers for a query, best first."""

    @abstractmethod
    async def get_answers(self, text: str) -> list[ScoredAnswer]:
        """Rank knowledge-base answers for one query."""

    async def aclose(self) -> None:
        """Release any transport resources held by the oracle."""


class QnAMakerClient(ScoringOracle):
    """Queries a QnA Maker knowledge base via its `generateAnswer` endpoint.

    Service scores arrive on a 0-100 scale and are normalized to 0-1. Answers
    scoring below `score_threshold` are dropped; the service ranking is kept.
    """

    def __init__(
        self,
        settings: QnAMakerSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    @property
    def url(self) -> str:
        host = self.settings.host.rstrip("/")
        return f"{host}/knowledgebases/{self.settings.knowledge_base_id}/generateAnswer"

    async def get_answers(self, text: str) -> list[ScoredAnswer]:
        try:
            response = await self._http.post(
                self.url,
                json={"question": text, "top": self.settings.top},
                headers={"Authorization": f"EndpointKey {self.settings.endpoint_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise QnAServiceError(
                f"QnA service returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise QnAServiceError(f"QnA service request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise QnAServiceError("QnA service returned a non-JSON body") from exc
        return self._parse_answers(payload)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _parse_answers(self, payload: Any) -> list[ScoredAnswer]:
        items = payload.get("answers", []) if isinstance(payload, dict) else None
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise QnAServiceError("QnA service returned an unexpected body")

        answers: list[ScoredAnswer] = []
        for item in items:
            try:
                score = float(item.get("score", 0.0)) / 100.0
            except (TypeError, ValueError) as exc:
                raise QnAServiceError("QnA service returned a non-numeric score") from exc
            if score < self.settings.score_threshold or score <= 0.0:
                continue
            answers.append(
                ScoredAnswer(
                    answer_text=str(item.get("answer", "")),
                    score=score,
                    matched_questions=tuple(item.get("questions") or ()),
                )
            )
        return answers
