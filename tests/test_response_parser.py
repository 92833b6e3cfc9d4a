import pytest

from analysis.errors import ParseError
from analysis.response_parser import extract_json, snippet_of


def test_plain_object():
    assert extract_json('{"a": 1}') == {"a": 1}


def test_fenced_object_with_language_tag():
    text = '```json\n{"score": 7, "tags": ["l2"]}\n```'
    assert extract_json(text) == {"score": 7, "tags": ["l2"]}


def test_prose_around_object_is_ignored():
    text = 'Sure! Here is the analysis:\n{"name": "Monad"}\nLet me know if you need more.'
    assert extract_json(text) == {"name": "Monad"}


def test_array_payload():
    text = 'Result: [{"name": "A", "score": 3}, {"name": "B", "score": 9}] done'
    assert extract_json(text) == [{"name": "A", "score": 3}, {"name": "B", "score": 9}]


def test_object_wins_when_it_opens_first():
    assert extract_json('{"items": [1, 2]}') == {"items": [1, 2]}


def test_uppercase_fence():
    assert extract_json('```JSON\n{"ok": true}\n```') == {"ok": True}


@pytest.mark.parametrize("text", ["", "   ", None, 42])
def test_empty_or_non_text_input(text):
    with pytest.raises(ParseError):
        extract_json(text)


def test_no_brackets():
    with pytest.raises(ParseError) as info:
        extract_json("I could not find any information about this project.")
    assert "could not find" in info.value.snippet


def test_unterminated_object():
    with pytest.raises(ParseError):
        extract_json('{"name": "Monad"')


def test_invalid_json_inside_span_is_not_repaired():
    with pytest.raises(ParseError) as info:
        extract_json("{'name': 'single quotes'}")
    assert "not valid JSON" in str(info.value)
    assert info.value.__cause__ is not None


def test_trailing_comma_is_rejected():
    with pytest.raises(ParseError):
        extract_json('{"a": 1,}')


def test_snippet_is_flattened_and_truncated():
    text = "line one\n\n   line two " + "x" * 300
    snippet = snippet_of(text, limit=20)
    assert snippet.startswith("line one line two")
    assert snippet.endswith("...")
    assert len(snippet) == 23


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_non_standard_constants_are_rejected(constant):
    with pytest.raises(ParseError) as info:
        extract_json(f'{{"score": {constant}}}')
    assert "non-standard" in str(info.value)
