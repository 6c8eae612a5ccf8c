from conftest import VISION_TEXT
from models.extraction.herb_extractor import (
    CAPITALIZED_CONFIDENCE,
    DEFAULT_CONFIDENCE,
    LABELED_CONFIDENCE,
    NATURAL_LANGUAGE_CONFIDENCE,
    Candidate,
    HerbExtractor,
    capitalized_name,
    extract_herb_info,
    labeled_name,
    natural_language_name,
    sanitize,
    slugify,
)
from models.extraction.schema_definition import UNKNOWN_HERB, AiMetadata


def test_labeled_fields_with_explicit_confidence():
    identity = extract_herb_info("HERB NAME: Turmeric\nSCIENTIFIC NAME: Curcuma longa\nCONFIDENCE: 95")

    assert identity.name.common == "Turmeric"
    assert identity.name.scientific == "Curcuma longa"
    assert identity.confidence == 95
    assert identity.generated_id == "turmeric"


def test_full_vision_answer():
    identity = extract_herb_info(VISION_TEXT)

    assert identity.name.common == "Tulsi"
    assert identity.name.scientific == "Ocimum tenuiflorum"
    assert identity.name.sanskrit == "Tulasi"
    assert identity.confidence == 92
    assert identity.properties == "Rasa: Katu, Tikta; Virya: Ushna"
    assert identity.description == VISION_TEXT
    assert identity.alternative_matches == []


def test_labeled_name_without_confidence_uses_strategy_score():
    identity = extract_herb_info("ITEM NAME: Ashwagandha\nDESCRIPTION: dried roots")
    assert identity.name.common == "Ashwagandha"
    assert identity.confidence == LABELED_CONFIDENCE


def test_no_usable_text_falls_back_to_unknown_herb():
    identity = extract_herb_info("no identifiable plant material could be found here.")

    assert identity.name.common == UNKNOWN_HERB
    assert identity.confidence == DEFAULT_CONFIDENCE
    assert identity.generated_id == "unknown-herb"


def test_none_and_empty_input():
    for raw in (None, ""):
        identity = extract_herb_info(raw)
        assert identity.name.common == UNKNOWN_HERB
        assert identity.confidence == 70
        assert identity.description == ""


def test_natural_language_jar_of_honey():
    identity = extract_herb_info("the picture shows a jar of honey on a wooden table.")
    assert identity.name.common == "Honey"
    assert identity.confidence == NATURAL_LANGUAGE_CONFIDENCE


def test_natural_language_phrase_stops_at_break_word():
    candidate = natural_language_name("It appears to be turmeric powder in a small bowl.")
    assert candidate == Candidate("Turmeric Powder", NATURAL_LANGUAGE_CONFIDENCE, "natural_language")


def test_natural_language_skips_stop_words():
    assert natural_language_name("this is the picture of something") is None


def test_capitalized_heuristic_skips_denylisted_words():
    candidate = capitalized_name("Unfortunately the picture is blurry but Neem leaves are visible")
    assert candidate == Candidate("Neem leaves", CAPITALIZED_CONFIDENCE, "capitalized")


def test_capitalized_heuristic_ignores_short_words():
    assert capitalized_name("I am not sure.") is None


def test_markdown_and_brackets_are_stripped():
    assert labeled_name("**HERB NAME:** [Ashwagandha]").name == "Ashwagandha"
    assert labeled_name("**HERB NAME**: _Brahmi_").name == "Brahmi"
    assert sanitize(": - `Neem`") == "Neem"


def test_confidence_is_clamped():
    assert extract_herb_info("HERB NAME: Neem\nCONFIDENCE: 140").confidence == 100
    assert extract_herb_info("HERB NAME: Neem\n**CONFIDENCE:** 0").confidence == 0


def test_binomial_in_parentheses_is_scientific_name():
    identity = extract_herb_info("This appears to be holy basil (Ocimum sanctum) leaves.")
    assert identity.name.common == "Holy Basil"
    assert identity.name.scientific == "Ocimum sanctum"


def test_scientific_phrase_without_label():
    identity = extract_herb_info("HERB NAME: Ginger\nIts scientific name is Zingiber officinale.")
    assert identity.name.scientific == "Zingiber officinale"


def test_label_does_not_run_onto_next_line():
    identity = extract_herb_info("HERB NAME:\nSCIENTIFIC NAME: Curcuma longa")
    assert identity.name.common != "SCIENTIFIC NAME: Curcuma longa"
    assert identity.name.scientific == "Curcuma longa"


def test_first_strategy_wins_and_failures_are_skipped():
    def broken(text):
        raise RuntimeError("boom")

    def always_ginger(text):
        return Candidate("Ginger", 80, "custom")

    extractor = HerbExtractor(strategies=[broken, always_ginger, labeled_name])
    candidate = extractor.best_candidate("HERB NAME: Turmeric")

    assert candidate.name == "Ginger"
    assert candidate.strategy == "custom"


def test_empty_strategy_list_uses_default():
    identity = HerbExtractor(strategies=[]).extract("HERB NAME: Turmeric")
    assert identity.name.common == UNKNOWN_HERB
    assert identity.confidence == DEFAULT_CONFIDENCE


def test_ai_metadata_is_attached():
    meta = AiMetadata(model="gemini-1.5-flash", service="gemini")
    identity = HerbExtractor().extract(VISION_TEXT, ai_metadata=meta)
    assert identity.ai_metadata == meta


def test_slugify():
    assert slugify("  Holy Basil  ") == "holy-basil"
