from conftest import REMEDY_TEXT
from models.extraction.section_extractor import (
    ELLIPSIS,
    SECTION_RULES,
    extract_section,
    extract_sections,
    split_paragraphs,
)

PARAGRAPHS = split_paragraphs(REMEDY_TEXT)


def test_split_paragraphs_on_blank_lines():
    assert len(PARAGRAPHS) == 5
    assert split_paragraphs("one\n   \n\ntwo\nstill two") == ["one", "two\nstill two"]
    assert split_paragraphs("") == []


def test_short_dosage_paragraph_is_returned_verbatim():
    dosage = extract_section(REMEDY_TEXT, ["dosage"], 100)
    assert dosage == PARAGRAPHS[1]
    assert not dosage.endswith(ELLIPSIS)


def test_long_paragraph_is_truncated_with_ellipsis():
    dietary = extract_section(REMEDY_TEXT, ["diet"], 100)
    assert len(PARAGRAPHS[2]) > 100
    assert dietary == PARAGRAPHS[2][:100] + ELLIPSIS


def test_first_matching_paragraph_wins():
    text = "Take it slowly.\n\nDosage: 1 tsp twice daily."
    assert extract_section(text, ["dosage", "take"], 100) == "Take it slowly."


def test_keyword_match_is_case_insensitive():
    assert extract_section("PRECAUTIONS: none known", ["precaution"]) == "PRECAUTIONS: none known"


def test_missing_section_is_empty():
    assert extract_section(REMEDY_TEXT, ["pranayama"]) == ""
    assert extract_section("", ["dosage"]) == ""
    assert extract_section(REMEDY_TEXT, []) == ""


def test_extract_sections_maps_every_rule():
    sections = extract_sections(REMEDY_TEXT)

    assert sections.preparation == PARAGRAPHS[0]
    assert sections.dosage == PARAGRAPHS[1]
    assert sections.dietary == PARAGRAPHS[2][:100] + ELLIPSIS
    assert sections.precautions == PARAGRAPHS[3]
    assert sections.timeline == PARAGRAPHS[4]
    assert sections.lifestyle == ""
    assert sections.yoga == ""
    assert set(sections.model_dump()) == set(SECTION_RULES)


def test_extract_sections_never_raises_on_empty_text():
    sections = extract_sections("")
    assert all(value == "" for value in sections.model_dump().values())


def test_matching_paragraph_keeps_its_own_whitespace():
    text = "Intro line.\n\n   Dosage: 1 tsp with warm water.  \n\nClosing."
    assert extract_section(text, ["dosage"], 100) == "   Dosage: 1 tsp with warm water.  "


def test_truncation_counts_leading_whitespace():
    text = "Intro.\n\n  Dosage: " + "x" * 20
    assert extract_section(text, ["dosage"], 10) == "  Dosage: " + ELLIPSIS
