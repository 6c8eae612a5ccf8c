"""
HerbHeal Remedy Copilot – Remedy Pipeline
==========================================
Pipeline: Image → Identify → Generate → (optional) Translate

  IDLE → IDENTIFYING → GENERATING → [TRANSLATING] → COMPLETED
                 └── image unreadable ──────────────→ ABORTED

Every stage failure except an unreadable image degrades into a usable
result. The uploaded image is deleted on every path.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from core.errors import HerbHealError, ImageReadError, TranslationError
from core.logging_utils import log_pipeline_event
from models.extraction.schema_definition import (
    HerbIdentity,
    PatientProfile,
    PipelineResult,
    PipelineState,
    StageStatus,
)
from models.remedy.remedy_generator import RemedyGenerator
from models.translation.translator import DEFAULT_LANGUAGE, Translator
from models.vision.herb_identifier import HerbIdentifier

logger = logging.getLogger(__name__)


def cleanup_file(path: Union[str, Path]) -> bool:
    """Delete a transient upload. Returns True when a file was removed."""
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Failed to clean up %s: %s", path, e)
        return False
    logger.info("Cleaned up uploaded file %s", Path(path).name)
    return True


class RemedyPipeline:
    """Sequences identification, generation and translation for one upload."""

    def __init__(
        self,
        identifier: HerbIdentifier,
        generator: RemedyGenerator,
        translator: Optional[Translator] = None,
        cleanup_images: bool = True,
    ):
        self.identifier = identifier
        self.generator = generator
        self.translator = translator
        self.cleanup_images = cleanup_images

    def _identify(self, result: PipelineResult, image_path, condition, profile) -> HerbIdentity:
        try:
            return self.identifier.identify(image_path, condition, profile)
        except ImageReadError:
            raise
        except HerbHealError as e:
            result.identification_status = StageStatus.DEGRADED
            result.pipeline_errors.append(f"Identification error (fallback used): {e}")
            log_pipeline_event(
                logger, "identify", "degraded", {"error": str(e)},
                run_id=result.id, level=logging.WARNING,
            )
            return HerbIdentity.unknown(
                str(e), model=self.identifier.model, service=self.identifier.service
            )

    def _translate(self, result: PipelineResult, language: str) -> None:
        if self.translator is None:
            result.translation_status = StageStatus.FAILED
            result.pipeline_errors.append(
                f"Translation to '{language}' requested but no translator is configured"
            )
            return

        result.state = PipelineState.TRANSLATING
        try:
            result.translated_instructions = self.translator.translate(
                result.remedy.primary.instructions, language
            )
            result.language = language
            result.translation_status = StageStatus.OK
            log_pipeline_event(logger, "translate", "completed", {"language": language}, run_id=result.id)
        except TranslationError as e:
            result.translation_status = StageStatus.FAILED
            result.pipeline_errors.append(f"Translation error (remedy left in English): {e}")
            log_pipeline_event(
                logger, "translate", "failed", {"language": language, "error": str(e)},
                run_id=result.id, level=logging.WARNING,
            )

    def run(
        self,
        image_path: Union[str, Path],
        condition: str,
        profile: Optional[Union[PatientProfile, dict]] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> PipelineResult:
        """
        Run the full remedy pipeline for one uploaded image.

        Returns
        -------
        PipelineResult in state COMPLETED with non-null identity and remedy.

        Raises
        ------
        ImageReadError – the image could not be read; the run is ABORTED.
        """
        result = PipelineResult()

        try:
            if isinstance(profile, dict):
                profile = PatientProfile.model_validate(profile)
            profile = profile or PatientProfile()

            result.state = PipelineState.IDENTIFYING
            log_pipeline_event(logger, "identify", "started", {"image": Path(image_path).name}, run_id=result.id)
            identity = self._identify(result, image_path, condition, profile)
            result.identity = identity

            result.state = PipelineState.GENERATING
            log_pipeline_event(logger, "generate", "started", {"herb": identity.name.common}, run_id=result.id)
            outcome = self.generator.generate_outcome(identity, profile, condition)
            result.remedy = outcome.value
            result.remedy_status = outcome.status
            if outcome.degraded:
                result.pipeline_errors.append(f"Remedy generation error (fallback used): {outcome.reason}")
                log_pipeline_event(
                    logger, "generate", "degraded", {"error": outcome.reason},
                    run_id=result.id, level=logging.WARNING,
                )

            if language and language != DEFAULT_LANGUAGE:
                self._translate(result, language)

            result.state = PipelineState.COMPLETED
            log_pipeline_event(
                logger, "pipeline", "completed",
                {
                    "herb": identity.name.common,
                    "identification": result.identification_status.value,
                    "remedy": result.remedy_status.value,
                    "language": result.language,
                },
                run_id=result.id,
            )
            return result

        except ImageReadError as e:
            result.state = PipelineState.ABORTED
            e.run_id = result.id
            e.state = result.state
            log_pipeline_event(
                logger, "pipeline", "aborted", {"error": str(e)},
                run_id=result.id, level=logging.ERROR,
            )
            raise

        finally:
            if self.cleanup_images:
                cleanup_file(image_path)
