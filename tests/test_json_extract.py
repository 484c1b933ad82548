from goalpilot.json_extract import extract_json


def test_object_inside_noise():
    result = extract_json('noise {"a":1} noise')
    assert result.ok
    assert result.value == {"a": 1}


def test_plain_text_is_a_tagged_failure():
    result = extract_json("not json")
    assert not result.ok
    assert result.value is None
    assert result.error


def test_empty_and_none():
    assert not extract_json("").ok
    assert not extract_json(None).ok


def test_code_fenced_response():
    text = '```json\n{"day": 3, "tasks": []}\n```'
    assert extract_json(text).value == {"day": 3, "tasks": []}


def test_nested_object_is_returned_whole():
    text = 'Here you go: {"plan": {"day": 1}, "ok": true} Hope it helps {}'
    assert extract_json(text).value == {"plan": {"day": 1}, "ok": True}


def test_braces_inside_strings_do_not_confuse_the_scan():
    text = 'prefix {"title": "use { and } wisely", "n": 2} suffix'
    assert extract_json(text).value == {"title": "use { and } wisely", "n": 2}


def test_skips_broken_span_and_finds_later_object():
    text = '{oops} then {"title": "x"}'
    assert extract_json(text).value == {"title": "x"}


def test_top_level_array_is_not_an_object():
    result = extract_json("[1, 2, 3]")
    assert not result.ok


def test_truncated_json_fails_cleanly():
    result = extract_json('{"title": "unfinished"')
    assert not result.ok
