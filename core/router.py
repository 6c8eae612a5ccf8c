"""
HerbHeal Remedy Copilot – Router
=================================
Top-level entrypoint that reads the model configuration, wires one shared
RetryingTransport into the three stages and exposes the two caller-facing
operations: ``remedy`` and ``translate``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import requests
import yaml

from core.transport import RetryingTransport, RetryPolicy
from models.extraction.schema_definition import PatientProfile
from models.remedy.remedy_generator import RemedyGenerator
from models.translation.translator import DEFAULT_LANGUAGE, Translator
from models.vision.herb_identifier import HerbIdentifier
from pipelines.remedy_pipeline import RemedyPipeline

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "configs" / "model_config.yaml"


class HerbHealRouter:
    """One-call entrypoint for HerbHeal Remedy Copilot."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        session: Optional[requests.Session] = None,
        api_keys: Optional[dict] = None,
    ):
        cfg_path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH

        self.config: dict = {}
        if cfg_path.exists():
            with open(cfg_path) as f:
                self.config = yaml.safe_load(f) or {}
        else:
            logger.warning("Model config not found at %s – using defaults", cfg_path)

        keys = api_keys or {}
        self.transport = RetryingTransport(
            policy=RetryPolicy.from_config(self.config.get("retry", {})),
            session=session,
        )

        vision_cfg = self._build_vision_config()
        remedy_cfg = self._build_remedy_config()
        translation_cfg = self._build_translation_config()

        self.identifier = HerbIdentifier(self.transport, api_key=keys.get("gemini"), **vision_cfg)
        self.generator = RemedyGenerator(self.transport, api_key=keys.get("perplexity"), **remedy_cfg)
        self.translator = Translator(self.transport, api_key=keys.get("perplexity"), **translation_cfg)
        logger.info(
            "Vision model: %s | remedy model: %s",
            vision_cfg["model"], remedy_cfg["model"],
        )

        self.pipeline = RemedyPipeline(
            identifier=self.identifier,
            generator=self.generator,
            translator=self.translator,
            cleanup_images=self.config.get("pipeline", {}).get("cleanup_images", True),
        )

    def _max_attempts(self) -> int:
        return int(self.config.get("retry", {}).get("max_attempts", 3))

    def _build_vision_config(self) -> dict:
        v = self.config.get("vision", {})
        return {
            "model": v.get("model", "gemini-1.5-flash"),
            "endpoint_url": v.get("endpoint_url"),
            "timeout": v.get("timeout", 30),
            "max_attempts": self._max_attempts(),
        }

    def _build_remedy_config(self) -> dict:
        r = self.config.get("remedy", {})
        params = r.get("parameters", {})
        return {
            "model": r.get("model", "llama-3.1-sonar-large-128k-online"),
            "endpoint_url": r.get("endpoint_url"),
            "timeout": r.get("timeout", 30),
            "max_tokens": params.get("max_tokens", 1500),
            "temperature": params.get("temperature", 0.2),
            "max_attempts": self._max_attempts(),
        }

    def _build_translation_config(self) -> dict:
        t = self.config.get("translation", {})
        params = t.get("parameters", {})
        return {
            "model": t.get("model", "llama-3.1-sonar-large-128k-online"),
            "endpoint_url": t.get("endpoint_url"),
            "timeout": t.get("timeout", 30),
            "max_tokens": params.get("max_tokens", 800),
            "temperature": params.get("temperature", 0.1),
            "max_attempts": self._max_attempts(),
        }

    # ── Public API ──────────────────────────────────────────────────────

    def remedy(
        self,
        image_path: Union[str, Path],
        condition: str,
        profile: Optional[Union[PatientProfile, dict]] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> dict:
        """
        Identify the herb in ``image_path`` and build a remedy for ``condition``.

        Returns
        -------
        dict – camelCase PipelineResult payload.
        """
        result = self.pipeline.run(image_path, condition, profile, language=language)
        return result.model_dump(by_alias=True, mode="json")

    def translate(self, text: str, language: str) -> str:
        """Translate previously generated remedy text. Raises TranslationError."""
        return self.translator.translate(text, language)
