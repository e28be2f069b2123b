from orchestrator.response_validator import (
    ResponseValidator,
    contains_markdown_link,
    extract_markdown_links,
)


def test_cited_answer_is_ok_and_reports_links():
    text = "Norris won ([F1](https://www.formula1.com/results)) and [BBC](https://bbc.co.uk/sport/f1)."
    result = ResponseValidator().validate(text)
    assert result.ok is True
    assert result.reason == "ok"
    assert result.links == ("https://www.formula1.com/results", "https://bbc.co.uk/sport/f1")


def test_answer_without_links_is_flagged():
    result = ResponseValidator().validate("Lando Norris won the 2025 championship.")
    assert result.ok is False
    assert result.reason == "missing_citation"


def test_empty_answer():
    assert ResponseValidator().validate("   ").reason == "empty"


def test_refusal_detected_before_citation_check():
    result = ResponseValidator().validate("I'm sorry, but I can't assist with that. [x](https://x.com)")
    assert result.reason == "refusal"


def test_bare_urls_and_brackets_are_not_links():
    assert not contains_markdown_link("see https://example.com")
    assert not contains_markdown_link("[not a link] (https://example.com)")
    assert extract_markdown_links("") == []
