"""
HerbHeal Remedy Copilot – Schema Definitions
=============================================
Pydantic models for the three-stage pipeline:
  Stage 1 output: Herb identity (from the vision model)
  Stage 2 output: Remedy recommendation (from the language model)
  Stage 3 output: Optional translation of the remedy text

Attributes are snake_case; ``model_dump(by_alias=True)`` yields the
camelCase payload the web layer stores and returns.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.errors import TransportError

T = TypeVar("T")

UNKNOWN_HERB = "Unknown Herb"
DEFAULT_AGE = "Adult"
NOT_SPECIFIED = "Not specified"

CONSTITUTIONS = (
    "Vata",
    "Pitta",
    "Kapha",
    "Vata-Pitta",
    "Pitta-Kapha",
    "Vata-Kapha",
    "Tri-Dosha",
)

DISCLAIMER = (
    "This is an AI-generated traditional-medicine suggestion. It is NOT a medical "
    "diagnosis or prescription. Consult a qualified Ayurvedic practitioner or physician "
    "before use."
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Enums ───────────────────────────────────────────────────────────────────


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"      # HTTP 429
    SERVER_ERROR = "server_error"      # HTTP 5xx
    CLIENT_ERROR = "client_error"      # other 4xx
    NETWORK = "network"                # DNS / connection refused / reset
    TIMEOUT = "timeout"
    INVALID_BODY = "invalid_body"      # 2xx that is not JSON


class StageStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


class PipelineState(str, Enum):
    IDLE = "idle"
    IDENTIFYING = "identifying"
    GENERATING = "generating"
    TRANSLATING = "translating"
    COMPLETED = "completed"
    ABORTED = "aborted"


# ── Shared metadata ─────────────────────────────────────────────────────────


class TokenUsage(_CamelModel):
    input: int = Field(default=0, ge=0)
    output: int = Field(default=0, ge=0)


class AiMetadata(_CamelModel):
    """Observability only; never drives control flow."""
    model: str
    service: str
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    error: Optional[str] = None


# ── Patient input ───────────────────────────────────────────────────────────


class PatientProfile(_CamelModel):
    """Read-only patient context supplied by the caller."""
    age: Union[int, str] = DEFAULT_AGE
    gender: str = NOT_SPECIFIED
    constitution: str = NOT_SPECIFIED

    @field_validator("age", mode="before")
    @classmethod
    def _check_age(cls, value: Any) -> Union[int, str]:
        # Anything that is not a positive whole number or a description becomes "Adult".
        if value is None or isinstance(value, bool):
            return DEFAULT_AGE
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return DEFAULT_AGE
            if not text.isdigit():
                return text
            value = int(text)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int) and value > 0:
            return value
        return DEFAULT_AGE

    @field_validator("gender", mode="before")
    @classmethod
    def _default_gender(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            return NOT_SPECIFIED
        return str(value).strip()

    @field_validator("constitution", mode="before")
    @classmethod
    def _known_constitution(cls, value: Any) -> str:
        if value is None:
            return NOT_SPECIFIED
        text = str(value).strip()
        for known in CONSTITUTIONS:
            if text.lower() == known.lower():
                return known
        return NOT_SPECIFIED


# ── Stage 1: Herb identity ──────────────────────────────────────────────────


class HerbName(_CamelModel):
    common: str = Field(default=UNKNOWN_HERB, min_length=1)
    scientific: str = ""
    sanskrit: str = ""


class AlternativeMatch(_CamelModel):
    name: str
    confidence: int = Field(default=0, ge=0, le=100)


class HerbIdentity(_CamelModel):
    """Output of the identification stage. Immutable once returned."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    generated_id: str
    name: HerbName
    confidence: int = Field(ge=0, le=100)
    description: str = ""
    properties: str = ""
    alternative_matches: List[AlternativeMatch] = Field(default_factory=list)
    ai_metadata: Optional[AiMetadata] = None

    @classmethod
    def unknown(cls, error: str, model: str = "unknown", service: str = "unknown") -> "HerbIdentity":
        """Degraded identity used when the vision call itself failed."""
        return cls(
            generated_id="unknown-herb",
            name=HerbName(common=UNKNOWN_HERB),
            confidence=0,
            description="",
            properties="",
            ai_metadata=AiMetadata(model=model, service=service, error=error),
        )


# ── Stage 2: Remedy recommendation ──────────────────────────────────────────


class HerbUsage(_CamelModel):
    name: str
    description: str = ""
    properties: str = ""
    dosage: str = ""
    preparation: str = ""


class PrimaryRemedy(_CamelModel):
    instructions: str = Field(min_length=1)
    herbs: List[HerbUsage] = Field(default_factory=list)
    precautions: str = ""


class SupportiveCare(_CamelModel):
    lifestyle: str = ""
    diet: str = ""
    yoga: str = ""


class FollowUp(_CamelModel):
    duration: str = "2-4 weeks"
    monitoring: str = ""
    next_steps: str = ""


class RemedySections(_CamelModel):
    """Labelled paragraphs pulled out of free-text remedy output."""
    preparation: str = ""
    dosage: str = ""
    dietary: str = ""
    precautions: str = ""
    timeline: str = ""
    lifestyle: str = ""
    yoga: str = ""


class RemedyRecommendation(_CamelModel):
    primary: PrimaryRemedy
    supportive: SupportiveCare = Field(default_factory=SupportiveCare)
    follow_up: FollowUp = Field(default_factory=FollowUp)
    sections: RemedySections = Field(default_factory=RemedySections)
    ayush_compliance: bool = True
    confidence: int = Field(ge=0, le=100)
    ai_metadata: Optional[AiMetadata] = None


# ── Transport / stage results ───────────────────────────────────────────────


class RetryOutcome(BaseModel):
    """Result of one RetryingTransport.call(): a payload or a terminal failure."""
    ok: bool
    status_code: Optional[int] = None
    payload: Optional[Any] = None
    text: str = ""
    error: Optional[str] = None
    failure: Optional[FailureKind] = None
    attempts: int = 0
    delays: List[float] = Field(default_factory=list)
    elapsed_backoff: float = 0.0

    def raise_for_failure(self, stage: str) -> None:
        """Raise TransportError when this outcome is not a success."""
        if self.ok:
            return
        raise TransportError(
            f"{stage} call failed after {self.attempts} attempt(s): {self.error}",
            status_code=self.status_code,
            failure=self.failure.value if self.failure else None,
            attempts=self.attempts,
        )


class StageResult(BaseModel, Generic[T]):
    """Tagged stage result: ok, degraded-but-usable, or failed."""
    status: StageStatus
    value: Optional[T] = None
    reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.status == StageStatus.DEGRADED


# ── Provider envelopes ──────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    role: Optional[str] = None
    content: str


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0


class ChatCompletionEnvelope(BaseModel):
    """OpenAI-compatible chat completion body (Perplexity)."""
    choices: List[ChatChoice] = Field(min_length=1)
    usage: Optional[ChatUsage] = None


class GeminiPart(_CamelModel):
    text: Optional[str] = None


class GeminiContent(_CamelModel):
    parts: List[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(_CamelModel):
    content: GeminiContent


class GeminiUsage(_CamelModel):
    prompt_token_count: int = 0
    candidates_token_count: int = 0


class GeminiEnvelope(_CamelModel):
    """generateContent response body."""
    candidates: List[GeminiCandidate] = Field(min_length=1)
    usage_metadata: Optional[GeminiUsage] = None
    usage: Optional[ChatUsage] = None


# ── Full Pipeline Result ────────────────────────────────────────────────────


class PipelineResult(_CamelModel):
    """End-to-end result of one remedy pipeline run."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    state: PipelineState = PipelineState.IDLE
    identity: Optional[HerbIdentity] = None
    remedy: Optional[RemedyRecommendation] = None
    language: str = "en"
    translated_instructions: Optional[str] = None
    identification_status: StageStatus = StageStatus.OK
    remedy_status: StageStatus = StageStatus.OK
    translation_status: Optional[StageStatus] = None    # None when no translation was requested
    pipeline_errors: List[str] = Field(default_factory=list)
    disclaimer: str = DISCLAIMER
