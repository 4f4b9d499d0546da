import pytest

from termslens.errors import ModelError, ParseError, ShapeError
from termslens.models import Category, Importance
from termslens.structured import decode_json, decode_key_points, decode_relevance, decode_string_list


def test_decode_json_strips_markdown_fences():
    raw = '```json\n[{"point": "Data is sold", "importance": "high"}]\n```'

    assert decode_json(raw) == [{"point": "Data is sold", "importance": "high"}]


def test_decode_json_skips_chatter_and_bracketed_prose():
    raw = 'Sure! Here are the [important] points: [1, 2, 3] Hope that helps.'

    assert decode_json(raw) == [1, 2, 3]


def test_decode_json_finds_object_literal():
    raw = 'The rating is {"score": 8, "reasoning": "mentions deletion"}.'

    assert decode_json(raw, "object") == {"score": 8, "reasoning": "mentions deletion"}


@pytest.mark.parametrize("raw", [None, "", "no json here", "[unterminated", '{"a": 1}'])
def test_decode_json_raises_parse_error(raw):
    with pytest.raises(ParseError):
        decode_json(raw, "array")


def test_parse_errors_count_as_model_errors():
    assert issubclass(ParseError, ModelError)
    assert issubclass(ShapeError, ParseError)


def test_decode_key_points_normalises_and_drops_bad_items():
    raw = """[
        {"point": "  Shares data with advertisers ", "importance": "HIGH", "category": "Privacy"},
        {"point": "Arbitration required", "importance": "medium", "category": "courts"},
        {"point": "", "importance": "low"},
        {"importance": "low", "category": "data"}
    ]"""

    points = decode_key_points(raw, chunk_index=2)

    assert [point.point for point in points] == ["Shares data with advertisers", "Arbitration required"]
    assert points[0].importance is Importance.HIGH
    assert points[0].category is Category.PRIVACY
    assert points[1].category is Category.OTHER
    assert all(point.chunk_index == 2 for point in points)


def test_decode_key_points_rejects_all_invalid_items():
    with pytest.raises(ShapeError):
        decode_key_points('[{"point": "x", "importance": "critical"}]')


def test_decode_key_points_accepts_empty_array():
    assert decode_key_points("[]") == []


def test_decode_relevance_clamps_score():
    assert decode_relevance('{"score": 14, "reasoning": "very"}') == (10, "very")
    assert decode_relevance('{"score": -3}') == (0, "")
    assert decode_relevance('{"score": 6.6, "reasoning": "ok"}') == (7, "ok")


def test_decode_relevance_rejects_non_numeric_score():
    with pytest.raises(ShapeError):
        decode_relevance('{"score": "high"}')


def test_decode_relevance_rejects_non_finite_score():
    with pytest.raises(ShapeError):
        decode_relevance('{"score": NaN, "reasoning": "x"}')
    with pytest.raises(ShapeError):
        decode_relevance('{"score": Infinity}')


def test_decode_string_list_requires_strings():
    assert decode_string_list('["What is shared? ", "Can I opt out?"]') == ["What is shared?", "Can I opt out?"]
    with pytest.raises(ShapeError):
        decode_string_list("[]")
    with pytest.raises(ShapeError):
        decode_string_list('["ok", 3]')
