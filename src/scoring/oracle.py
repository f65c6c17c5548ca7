# src/scoring/oracle.py — v1
"""Similarity-scoring oracle backed by an LLM.

Input: invention fields plus candidate items. Output: per-item similarity
and rationale, an overall verdict, confidence, summary and truth scores.
Anything that does not validate against OracleVerdict is a failure; the
caller decides how to degrade.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import re
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from noveltyscope.core.models import Finding, NoveltyCheckRequest, TruthScores
from noveltyscope.llm.base_client import BaseLLMClient
from noveltyscope.llm.models import Message
from noveltyscope.llm.retry import LLMRetryExhausted, RetryConfig, with_retry
from noveltyscope.scoring import prompts

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n(.*?)\n\s*```", re.DOTALL)


class ScoringOracleError(Exception):
    """The oracle could not produce a usable verdict."""


class ScoringOracleUnavailableError(ScoringOracleError):
    """LLM call failed or timed out."""


class ScoringOracleMalformedError(ScoringOracleError):
    """LLM answered, but not with the expected structure."""


class ItemAnalysis(BaseModel):
    item_id: str
    similarity_score: float = Field(ge=0.0, le=1.0)
    analysis: str = ""


class OracleVerdict(BaseModel):
    """Strict shape of a scoring answer."""

    is_novel: bool
    confidence: float = Field(ge=0.0, le=1.0)
    item_analyses: list[ItemAnalysis] = Field(default_factory=list)
    summary: str
    truth_scores: TruthScores

    def by_item_id(self) -> dict[str, ItemAnalysis]:
        return {a.item_id: a for a in self.item_analyses}


class SimilarityOracle:
    """Rates candidate items against an invention through one LLM call."""

    def __init__(
        self,
        llm: BaseLLMClient,
        context: Literal["retail", "web"],
        timeout_s: float = 60.0,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        retry_configs: dict[str, RetryConfig] | None = None,
    ) -> None:
        self._llm = llm
        self._context = context
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._retry_configs = retry_configs

    def build_prompt(self, request: NoveltyCheckRequest, items: list[Finding]) -> str:
        candidates = "\n".join(
            self._format_item(i, item) for i, item in enumerate(items, start=1)
        )
        return prompts.TEMPLATE.format(
            role=prompts.ROLES[self._context],
            task=prompts.TASK.format(source_label=prompts.SOURCE_LABELS[self._context]),
            how_to=prompts.HOW_TO,
            invention_name=request.invention_name,
            description=request.description,
            problem_statement=request.problem_statement or "Not provided",
            target_audience=request.target_audience or "Not provided",
            key_features=", ".join(request.key_features) or "Not provided",
            count=len(items),
            candidates=candidates,
            output=prompts.OUTPUT,
        )

    async def score(
        self, request: NoveltyCheckRequest, items: list[Finding]
    ) -> OracleVerdict:
        """Score ``items`` in bulk.

        Raises:
            ScoringOracleUnavailableError: LLM unreachable, erroring or too slow.
            ScoringOracleMalformedError: Answer not parseable as OracleVerdict.
        """
        prompt = self.build_prompt(request, items)
        prompt_hash = hashlib.sha256(prompt.encode()).hexdigest()[:16]
        logger.debug(
            "Scoring %d %s candidates (prompt %s)", len(items), self._context, prompt_hash
        )

        try:
            response = await asyncio.wait_for(
                with_retry(
                    self._llm.complete,
                    messages=[Message(role="user", content=prompt)],
                    system=prompts.SYSTEM,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                    response_format=OracleVerdict,
                    label=f"{self._context}_scoring",
                    retry_configs=self._retry_configs,
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise ScoringOracleUnavailableError(
                f"scoring timed out after {self._timeout_s:.0f}s"
            ) from e
        except LLMRetryExhausted as e:
            raise ScoringOracleUnavailableError(str(e)) from e

        return self.parse(response.content)

    @staticmethod
    def parse(content: str) -> OracleVerdict:
        """Validate raw LLM text as an OracleVerdict."""
        text = content.strip()
        match = _FENCE_RE.search(text)
        if match:
            text = match.group(1)
        try:
            return OracleVerdict.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            raise ScoringOracleMalformedError(f"unparsable scoring output: {e}") from e

    @staticmethod
    def _format_item(index: int, item: Finding) -> str:
        lines = [f"{index}. {item.title}", f"   - Item ID: {item.id}"]
        if item.description:
            lines.append(f"   - Details: {item.description[:300]}")
        if item.url:
            lines.append(f"   - URL: {item.url}")
        for key in ("price", "condition", "categories", "domain"):
            if key in item.metadata:
                lines.append(f"   - {key.capitalize()}: {item.metadata[key]}")
        return "\n".join(lines)
