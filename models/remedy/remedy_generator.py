"""
HerbHeal Remedy Copilot – Perplexity Remedy Generator
======================================================
Stage 2: Asks the language model for an Ayurvedic remedy built around the
identified herb and the patient's condition, then structures the answer.

Never raises from ``generate``/``generate_outcome``. Invalid input,
transport exhaustion and malformed responses all resolve to a fixed
fallback recommendation tagged as degraded.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from core.transport import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, RetryingTransport
from core.validation import parse_chat_completion
from models.extraction.schema_definition import (
    AiMetadata,
    FollowUp,
    HerbIdentity,
    HerbUsage,
    PatientProfile,
    PrimaryRemedy,
    RemedyRecommendation,
    StageResult,
    StageStatus,
    SupportiveCare,
    TokenUsage,
)
from models.extraction.section_extractor import extract_sections

logger = logging.getLogger(__name__)

PERPLEXITY_URL = "https://api.perplexity.ai/chat/completions"
DEFAULT_REMEDY_MODEL = "llama-3.1-sonar-large-128k-online"

DEFAULT_DURATION = "2-4 weeks"
DEFAULT_MONITORING = "Monitor symptoms and adjust as needed"
DEFAULT_NEXT_STEPS = "Consult an Ayurvedic practitioner if symptoms persist"
MISSING_CONFIDENCE = 70
FALLBACK_CONFIDENCE = 50

# ── Remedy Prompts ──────────────────────────────────────────────────────────

REMEDY_SYSTEM_PROMPT = (
    "You are an experienced Ayurvedic practitioner with deep knowledge of traditional "
    "herbal medicine, herb preparation methods, and safe dosing practices. Provide "
    "accurate, safe, and traditional Ayurvedic guidance."
)

REMEDY_USER_PROMPT = """As an expert in Ayurvedic medicine, create a comprehensive herbal remedy using {herb}{scientific} to treat {condition}.

Patient Profile:
- Age: {age}
- Gender: {gender}
- Constitution: {constitution}

Please provide a detailed remedy including:

1. **Primary Preparation Method:**
   - How to prepare the herb (decoction, powder, paste, etc.)
   - Exact quantities and measurements
   - Preparation steps

2. **Dosage & Administration:**
   - Recommended dosage
   - Frequency (how many times per day)
   - Best time to take (before/after meals, morning/evening)
   - Duration of treatment

3. **Adjuvants & Enhancers:**
   - Other herbs or substances to combine with
   - Carrier substances (honey, ghee, warm water, etc.)

4. **Dietary Recommendations:**
   - Foods to include that support the treatment
   - Foods to avoid during treatment

5. **Precautions & Contraindications:**
   - Who should avoid this remedy
   - Potential side effects
   - Drug interactions if any

6. **Expected Results:**
   - Timeline for improvement
   - Signs of effectiveness

Ensure the remedy follows traditional Ayurvedic principles and is safe for the specified age and gender. Include relevant Sanskrit terms where appropriate."""


def build_remedy_prompt(identity: HerbIdentity, profile: PatientProfile, condition: str) -> str:
    scientific = f" ({identity.name.scientific})" if identity.name.scientific else ""
    return REMEDY_USER_PROMPT.format(
        herb=identity.name.common,
        scientific=scientific,
        condition=condition,
        age=profile.age,
        gender=profile.gender,
        constitution=profile.constitution,
    )


class RemedyGenerator:
    """Remedy generation stage backed by an OpenAI-compatible chat endpoint."""

    service = "perplexity"

    def __init__(
        self,
        transport: RetryingTransport,
        endpoint_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: str = DEFAULT_REMEDY_MODEL,
        max_tokens: int = 1500,
        temperature: float = 0.2,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        **_,  # absorb extra keys from config dicts
    ):
        self.api_key = api_key or os.environ.get("PERPLEXITY_API_KEY")
        if not self.api_key:
            raise EnvironmentError(
                "PERPLEXITY_API_KEY is not set. "
                "Add it to your .env file or pass api_key= to RemedyGenerator()."
            )
        self.transport = transport
        self.endpoint_url = endpoint_url or PERPLEXITY_URL
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.max_attempts = max_attempts

    # ── Input checks ────────────────────────────────────────────────────

    @staticmethod
    def _validate_inputs(identity: Optional[HerbIdentity], condition: Optional[str]) -> None:
        if identity is None or not identity.name.common.strip():
            raise ValueError("Invalid herb identification data")
        if not condition or not str(condition).strip():
            raise ValueError("Treatment condition is required")

    # ── Model call ──────────────────────────────────────────────────────

    def _call_model(self, prompt: str) -> tuple:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": REMEDY_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        outcome = self.transport.call(
            self.endpoint_url,
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            max_attempts=self.max_attempts,
        )
        outcome.raise_for_failure("Remedy generation")
        return parse_chat_completion(outcome.payload)

    # ── Assembly ────────────────────────────────────────────────────────

    def _assemble(self, remedy_text: str, identity: HerbIdentity, tokens: TokenUsage) -> RemedyRecommendation:
        sections = extract_sections(remedy_text)
        confidence = identity.confidence or MISSING_CONFIDENCE
        return RemedyRecommendation(
            primary=PrimaryRemedy(
                instructions=remedy_text,
                herbs=[
                    HerbUsage(
                        name=identity.name.common,
                        description=identity.description or "",
                        properties=identity.properties or "",
                        dosage=sections.dosage,
                        preparation=sections.preparation,
                    )
                ],
                precautions=sections.precautions,
            ),
            supportive=SupportiveCare(
                lifestyle=sections.lifestyle,
                diet=sections.dietary,
                yoga=sections.yoga,
            ),
            follow_up=FollowUp(
                duration=sections.timeline or DEFAULT_DURATION,
                monitoring=DEFAULT_MONITORING,
                next_steps=DEFAULT_NEXT_STEPS,
            ),
            sections=sections,
            ayush_compliance=True,
            confidence=confidence,
            ai_metadata=AiMetadata(model=self.model, service=self.service, tokens=tokens),
        )

    def fallback(self, identity: Optional[HerbIdentity], condition: Optional[str], error: str) -> RemedyRecommendation:
        """Fixed recommendation used whenever generation fails."""
        herb_name = identity.name.common if identity is not None else "Herb"
        return RemedyRecommendation(
            primary=PrimaryRemedy(
                instructions=(
                    "We're sorry, but we couldn't generate a specific remedy at this time. "
                    f"For {condition or 'your condition'}, consider consulting with an "
                    "Ayurvedic practitioner for personalized advice."
                ),
                herbs=[
                    HerbUsage(
                        name=herb_name,
                        description=(identity.description if identity else "") or "No description available",
                        properties=(identity.properties if identity else "") or "Properties not available",
                    )
                ],
            ),
            supportive=SupportiveCare(
                lifestyle="Rest adequately and maintain hydration.",
                diet="Follow a balanced diet suitable for your constitution.",
                yoga="Practice gentle yoga as appropriate for your condition.",
            ),
            follow_up=FollowUp(
                duration=DEFAULT_DURATION,
                monitoring="Monitor symptoms and seek professional advice if condition persists.",
                next_steps="Consult an Ayurvedic practitioner for personalized treatment.",
            ),
            ayush_compliance=True,
            confidence=FALLBACK_CONFIDENCE,
            ai_metadata=AiMetadata(
                model=self.model, service=self.service, tokens=TokenUsage(), error=error
            ),
        )

    # ── Public API ──────────────────────────────────────────────────────

    def generate_outcome(
        self,
        identity: Optional[HerbIdentity],
        profile: Optional[PatientProfile],
        condition: Optional[str],
    ) -> StageResult[RemedyRecommendation]:
        """
        Generate a remedy and report whether it came from the model.

        Returns
        -------
        StageResult – status ``ok`` with the parsed recommendation, or
        ``degraded`` with the fallback and the failure reason.
        """
        try:
            self._validate_inputs(identity, condition)
            profile = profile or PatientProfile()
            logger.info(
                "Generating remedy with %s for %s to treat %s",
                self.model, identity.name.common, condition,
            )
            prompt = build_remedy_prompt(identity, profile, str(condition).strip())
            remedy_text, tokens = self._call_model(prompt)
            logger.info("Remedy generated (%d chars)", len(remedy_text))
            recommendation = self._assemble(remedy_text, identity, tokens)
            return StageResult[RemedyRecommendation](status=StageStatus.OK, value=recommendation)
        except Exception as e:
            logger.error("Remedy generation failed: %s", e)
            return StageResult[RemedyRecommendation](
                status=StageStatus.DEGRADED,
                value=self.fallback(identity, condition, str(e)),
                reason=str(e),
            )

    def generate(
        self,
        identity: Optional[HerbIdentity],
        profile: Optional[PatientProfile],
        condition: Optional[str],
    ) -> RemedyRecommendation:
        """Like generate_outcome() but returns only the recommendation."""
        return self.generate_outcome(identity, profile, condition).value
