#!/usr/bin/env python3
"""
HerbHeal Remedy Copilot – Main Entrypoint
==========================================
Usage:
    python main.py uploads/tulsi.jpg --condition "dry cough" --age 34 --gender Female
    python main.py uploads/ginger.png --condition nausea --language hi --json
    python main.py --translate "Boil 5 tulsi leaves in water." --language ta

Importable convenience function:
    from main import run_remedy
    result = run_remedy("uploads/tulsi.jpg", "dry cough", {"age": 34})
"""

from __future__ import annotations

import argparse
import json
import os
import sys

from dotenv import load_dotenv
load_dotenv(override=True)

from core.errors import ImageReadError, TranslationError
from core.logging_utils import setup_logging
from core.router import HerbHealRouter

# Module-level singleton router (lazy-initialised on first call)
_router: HerbHealRouter | None = None


def _get_router(config_path: str | None = None) -> HerbHealRouter:
    global _router
    if _router is None:
        _router = HerbHealRouter(config_path=config_path)
    return _router


def run_remedy(
    image_path: str,
    condition: str,
    profile: dict | None = None,
    language: str = "en",
    config_path: str | None = None,
) -> dict:
    """
    Run the HerbHeal pipeline and return the camelCase result payload.

    Parameters
    ----------
    image_path : str
        Path to the uploaded herb photograph. Deleted after the run unless
        ``pipeline.cleanup_images`` is false in the config.
    condition : str
        Condition the remedy should address.
    profile : dict, optional
        ``age``, ``gender``, ``constitution``.
    language : str
        Target language code ("en", "hi", "ta", "te", "bn", "mr", ...).
    config_path : str, optional
        Path to a custom ``model_config.yaml``.
    """
    router = _get_router(config_path)
    return router.remedy(image_path, condition, profile, language=language)


# ── Presentation helpers ────────────────────────────────────────────────────

def print_result(result: dict):
    """Pretty-print a remedy result to stdout."""
    identity = result.get("identity") or {}
    name = identity.get("name", {})
    remedy = result.get("remedy") or {}
    primary = remedy.get("primary", {})
    follow_up = remedy.get("followUp", {})

    print(f"\n{'='*60}")
    print(f"  HERBHEAL REMEDY  |  ID: {result.get('id', '?')}")
    print(f"{'='*60}")
    herb = name.get("common", "?")
    if name.get("scientific"):
        herb += f" ({name['scientific']})"
    print(f"  Herb:       {herb}")
    print(f"  Confidence: {identity.get('confidence', '?')}%  |  Remedy confidence: {remedy.get('confidence', '?')}%")
    print(f"  Status:     identification={result.get('identificationStatus')}  remedy={result.get('remedyStatus')}")
    print(f"{'─'*60}")

    print(result.get("translatedInstructions") or primary.get("instructions", ""))

    supportive = remedy.get("supportive", {})
    if supportive.get("diet"):
        print(f"\n  🍲 DIET: {supportive['diet']}")
    if primary.get("precautions"):
        print(f"\n  ⚠️  PRECAUTIONS: {primary['precautions']}")
    print(f"\n  ⏱  DURATION: {follow_up.get('duration', '')}")

    errors = result.get("pipelineErrors", [])
    if errors:
        print(f"\n  ❗ PIPELINE NOTES:")
        for e in errors:
            print(f"     • {e}")

    print(f"\n{'─'*60}")
    print(f"  ⚕️  {result.get('disclaimer', '')}")
    print(f"{'='*60}\n")


def main():
    parser = argparse.ArgumentParser(description="HerbHeal Remedy Copilot")
    parser.add_argument("image", nargs="?", help="Path to the herb photograph")
    parser.add_argument("--condition", "-d", help="Condition to treat")
    parser.add_argument("--age", help="Patient age")
    parser.add_argument("--gender", help="Patient gender")
    parser.add_argument("--constitution", help="Dosha constitution, e.g. Vata-Pitta")
    parser.add_argument("--language", "-l", default="en", help="Target language code")
    parser.add_argument("--translate", "-t", metavar="TEXT", help="Only translate TEXT")
    parser.add_argument("--keep-image", action="store_true", help="Do not delete the image afterwards")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON payload")
    parser.add_argument("--config", "-c", help="Path to model config YAML")

    args = parser.parse_args()

    if not args.translate and (not args.image or not args.condition):
        parser.print_help()
        return

    setup_logging(level=os.environ.get("LOG_LEVEL", "INFO"))

    router = HerbHealRouter(config_path=args.config)
    if args.keep_image:
        router.pipeline.cleanup_images = False

    if args.translate:
        try:
            print(router.translate(args.translate, args.language))
        except TranslationError as e:
            print(f"\n❌ {e}\n", file=sys.stderr)
            sys.exit(1)
        return

    profile = {"age": args.age, "gender": args.gender, "constitution": args.constitution}
    try:
        result = router.remedy(args.image, args.condition, profile, language=args.language)
    except ImageReadError as e:
        print(f"\n❌ {e}\n", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print_result(result)


if __name__ == "__main__":
    main()
