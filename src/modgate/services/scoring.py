"""Toxicity scoring for submitted text.

The scorer is a two-stage strategy:

- a primary provider (a Perspective-compatible HTTP API) called under a hard
  timeout and guarded by a circuit breaker;
- a deterministic local heuristic provider driven by a loaded
  :class:`~modgate.services.policy.PolicyTable`.

:class:`ContentScorer` never raises. Any primary failure, timeout, open
circuit or missing configuration degrades to the heuristic path and is
reported only through ``ScoreResult.degraded``, the log and
:class:`ScorerMetrics`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, Protocol

import httpx

from modgate.core.errors import ProviderError
from modgate.core.settings import settings
from modgate.db.time import utcnow
from modgate.services.policy import PolicyTable, load_policy

logger = logging.getLogger(__name__)

PROVIDER_PERSPECTIVE = "perspective"
PROVIDER_HEURISTIC = "heuristic"
PROVIDER_NONE = "none"

DEFAULT_TOXICITY_THRESHOLD = 0.7

# (response attribute, category name, reason) in severity precedence order.
PERSPECTIVE_ATTRIBUTES: tuple[tuple[str, str, str], ...] = (
    ("SEVERE_TOXICITY", "severeToxicity", "Severe toxicity detected"),
    ("IDENTITY_ATTACK", "identityAttack", "Identity attack detected"),
    ("THREAT", "threat", "Threat detected"),
    ("INSULT", "insult", "Insult detected"),
    ("PROFANITY", "profanity", "Profanity detected"),
    ("TOXICITY", "toxicity", "Toxic content detected"),
)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _unique(items: list[str]) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of scoring one text blob.

    ``scored_at`` is excluded from equality so two scores of the same text
    compare equal regardless of when they ran.
    """

    is_toxic: bool
    confidence: float
    reasons: tuple[str, ...] = ()
    categories: Mapping[str, float] = field(default_factory=dict)
    provider_id: str = PROVIDER_HEURISTIC
    degraded: bool = False
    scored_at: datetime = field(default_factory=utcnow, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", _clamp(self.confidence))
        object.__setattr__(self, "reasons", tuple(_unique(list(self.reasons))))

    @property
    def headline(self) -> str | None:
        """Return the most severe reason, if any."""
        return self.reasons[0] if self.reasons else None

    def as_degraded(self) -> ScoreResult:
        """Return a copy flagged as produced in degraded mode."""
        return ScoreResult(
            is_toxic=self.is_toxic,
            confidence=self.confidence,
            reasons=self.reasons,
            categories=dict(self.categories),
            provider_id=self.provider_id,
            degraded=True,
            scored_at=self.scored_at,
        )


class PrimaryProvider(Protocol):
    """External scoring provider; may suspend on network I/O and may fail."""

    provider_id: str

    async def analyze(self, text: str) -> ScoreResult: ...

    async def aclose(self) -> None: ...


class FallbackProvider(Protocol):
    """Local scoring provider; synchronous, bounded and infallible by contract."""

    provider_id: str

    def analyze(self, text: str) -> ScoreResult: ...


class HeuristicProvider:
    """Keyword and text-shape scorer driven by a policy table.

    The result is a pure function of the text and the table.
    """

    provider_id = PROVIDER_HEURISTIC

    def __init__(self, policy: PolicyTable, clock: Callable[[], datetime] = utcnow) -> None:
        self.policy = policy
        self._clock = clock

    def analyze(self, text: str) -> ScoreResult:
        policy = self.policy
        reasons: list[str] = []
        categories: dict[str, float] = {}
        confidence = 0.0

        for category in policy.categories:
            pattern = category.pattern
            if pattern is not None and pattern.search(text):
                categories[category.name] = category.weight
                reasons.append(category.reason)
                confidence += category.weight

        length = len(text)
        if length:
            caps_ratio = sum(1 for char in text if char.isupper()) / length
            special_ratio = (
                sum(
                    1
                    for char in text
                    if not char.isalnum()
                    and not (policy.special_ignores_whitespace and char.isspace())
                )
                / length
            )
            if caps_ratio > policy.caps_ratio_threshold:
                reasons.append(policy.caps_reason)
                confidence = max(confidence, policy.caps_confidence)
            if special_ratio > policy.special_ratio_threshold:
                reasons.append(policy.special_reason)
                confidence = max(confidence, policy.special_confidence)

        confidence = min(confidence, policy.confidence_cap)
        return ScoreResult(
            is_toxic=len(reasons) > 0,
            confidence=round(confidence, 4),
            reasons=tuple(reasons),
            categories=categories,
            provider_id=self.provider_id,
            scored_at=self._clock(),
        )


class PerspectiveProvider:
    """Client for a Perspective-compatible ``comments:analyze`` endpoint."""

    provider_id = PROVIDER_PERSPECTIVE

    def __init__(
        self,
        *,
        api_key: str,
        url: str,
        timeout_seconds: float,
        threshold: float = DEFAULT_TOXICITY_THRESHOLD,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.threshold = threshold
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def analyze(self, text: str) -> ScoreResult:
        payload = {
            "comment": {"text": text},
            "requestedAttributes": {attr: {} for attr, _, _ in PERSPECTIVE_ATTRIBUTES},
            "languages": ["en"],
        }
        try:
            response = await self._client.post(
                self.url,
                json=payload,
                params={"key": self.api_key},
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Provider request failed: {exc}") from exc

        if not response.is_success:
            raise ProviderError(f"Provider responded with {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError("Provider returned a non-JSON body") from exc
        return self.parse(body)

    def parse(self, body: Any) -> ScoreResult:
        """Turn an ``attributeScores`` payload into a :class:`ScoreResult`.

        Raises:
            ProviderError: If the payload is not shaped like an analyze response.
        """
        if not isinstance(body, dict) or not isinstance(body.get("attributeScores"), dict):
            raise ProviderError("Provider response is missing attributeScores")
        attributes = body["attributeScores"]

        categories: dict[str, float] = {}
        for attr, name, _ in PERSPECTIVE_ATTRIBUTES:
            try:
                value = attributes.get(attr, {}).get("summaryScore", {}).get("value", 0.0)
                categories[name] = _clamp(value or 0.0)
            except (AttributeError, TypeError, ValueError) as exc:
                raise ProviderError(f"Malformed score for {attr}") from exc

        confidence = max(categories.values(), default=0.0)
        reasons = [
            reason
            for _, name, reason in PERSPECTIVE_ATTRIBUTES
            if categories[name] > self.threshold
        ]
        return ScoreResult(
            is_toxic=confidence > self.threshold,
            confidence=confidence,
            reasons=tuple(reasons),
            categories=categories,
            provider_id=self.provider_id,
        )


class CircuitState(Enum):
    """Circuit breaker states for the primary provider."""

    CLOSED = "closed"      # Normal operation - requests allowed
    OPEN = "open"          # Provider considered down - skip straight to fallback
    HALF_OPEN = "half_open"  # Probing whether the provider recovered


@dataclass
class CircuitBreaker:
    """Circuit breaker wrapped around the primary provider."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 1
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = CircuitState.CLOSED
    _failure_count: int = 0
    _success_count: int = 0
    _last_failure_time: float = 0.0

    def is_open(self) -> bool:
        """Check if the circuit is open, moving to half-open after the recovery window."""
        if self._state == CircuitState.OPEN:
            if self.clock() - self._last_failure_time > self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
            return self._state == CircuitState.OPEN
        return False

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self.clock()
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count


@dataclass
class ScorerMetrics:
    """Counters for scoring requests and degraded fallbacks."""

    request_count: int = 0
    primary_success_count: int = 0
    primary_failure_count: int = 0
    degraded_count: int = 0
    total_primary_time: float = 0.0
    degraded_by_cause: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_primary(self, elapsed: float, success: bool) -> None:
        self.total_primary_time += elapsed
        if success:
            self.primary_success_count += 1
        else:
            self.primary_failure_count += 1

    def record_degraded(self, cause: str) -> None:
        self.degraded_count += 1
        self.degraded_by_cause[cause] += 1

    def average_primary_time(self) -> float:
        calls = self.primary_success_count + self.primary_failure_count
        return self.total_primary_time / calls if calls else 0.0

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-friendly copy of the counters."""
        return {
            "requests": self.request_count,
            "primary_success": self.primary_success_count,
            "primary_failure": self.primary_failure_count,
            "degraded": self.degraded_count,
            "degraded_by_cause": dict(self.degraded_by_cause),
            "average_primary_seconds": round(self.average_primary_time(), 4),
        }


class ContentScorer:
    """Single scoring entry point combining the primary and fallback providers."""

    def __init__(
        self,
        fallback: FallbackProvider,
        primary: PrimaryProvider | None = None,
        *,
        timeout_seconds: float = 5.0,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.timeout_seconds = timeout_seconds
        self.breaker = breaker or CircuitBreaker()
        self.metrics = ScorerMetrics()

    async def score(self, text: str) -> ScoreResult:
        """Score ``text``; never raises."""
        self.metrics.request_count += 1

        if self.primary is None:
            return self._degrade(text, "unconfigured")
        if self.breaker.is_open():
            return self._degrade(text, "circuit_open")

        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self.primary.analyze(text),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            self._primary_failed(start)
            logger.warning(
                "Scoring provider %s timed out after %.1fs",
                self.primary.provider_id,
                self.timeout_seconds,
            )
            return self._degrade(text, "timeout")
        except ProviderError as exc:
            self._primary_failed(start)
            logger.warning("Scoring provider %s failed: %s", self.primary.provider_id, exc)
            return self._degrade(text, "provider_error")
        except Exception:
            self._primary_failed(start)
            logger.warning(
                "Unexpected error from scoring provider %s",
                self.primary.provider_id,
                exc_info=True,
            )
            return self._degrade(text, "unexpected_error")

        self.metrics.record_primary(time.perf_counter() - start, success=True)
        self.breaker.record_success()
        return result

    def _primary_failed(self, start: float) -> None:
        self.metrics.record_primary(time.perf_counter() - start, success=False)
        self.breaker.record_failure()

    def _degrade(self, text: str, cause: str) -> ScoreResult:
        self.metrics.record_degraded(cause)
        if cause != "unconfigured":
            logger.warning("ProviderDegraded: scoring with %s (%s)", self.fallback.provider_id, cause)
        try:
            return self.fallback.analyze(text).as_degraded()
        except Exception:
            # The gate must always get a decision; an unscorable text is allowed through.
            logger.error("Fallback scorer failed; allowing content unscored", exc_info=True)
            return ScoreResult(
                is_toxic=False,
                confidence=0.0,
                provider_id=PROVIDER_NONE,
                degraded=True,
            )

    def status(self) -> dict[str, Any]:
        """Return provider configuration, circuit state and counters."""
        return {
            "primary": self.primary.provider_id if self.primary else None,
            "fallback": self.fallback.provider_id,
            "circuit_state": self.breaker.state.value,
            "timeout_seconds": self.timeout_seconds,
            "metrics": self.metrics.snapshot(),
        }

    async def aclose(self) -> None:
        if self.primary is not None:
            await self.primary.aclose()


def build_content_scorer(
    policy: PolicyTable | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ContentScorer:
    """Assemble a scorer from global settings."""
    policy = policy or load_policy(settings.moderation_policy_path)
    primary: PrimaryProvider | None = None
    if settings.provider_configured:
        primary = PerspectiveProvider(
            api_key=settings.moderation_api_key or "",
            url=settings.moderation_api_url,
            timeout_seconds=settings.moderation_provider_timeout_seconds,
            threshold=settings.moderation_toxicity_threshold,
            transport=transport,
        )
    return ContentScorer(
        HeuristicProvider(policy),
        primary,
        timeout_seconds=settings.moderation_provider_timeout_seconds,
        breaker=CircuitBreaker(
            failure_threshold=settings.moderation_breaker_failure_threshold,
            recovery_timeout=settings.moderation_breaker_recovery_seconds,
        ),
    )


@lru_cache(maxsize=1)
def get_content_scorer() -> ContentScorer:
    """Return the process-wide scorer instance."""
    return build_content_scorer()
