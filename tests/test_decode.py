from utils.decode import MALFORMED, MISSING, WRONG_TYPE, Fallback, Parsed, decode_json


def test_valid_json_is_parsed():
    decoded = decode_json('{"theme": "dark"}', {})

    assert isinstance(decoded, Parsed)
    assert decoded.ok
    assert decoded.value == {"theme": "dark"}


def test_missing_and_blank_fall_back():
    assert decode_json(None, {}).reason == MISSING
    assert decode_json("   ", []).reason == MISSING


def test_malformed_falls_back_to_default():
    default = {"a": 1}
    decoded = decode_json("{oops", default)

    assert isinstance(decoded, Fallback)
    assert decoded.reason == MALFORMED
    assert decoded.value is default


def test_wrong_shape_falls_back():
    assert decode_json("null", {}).reason == WRONG_TYPE
    assert decode_json('{"a": 1}', []).reason == WRONG_TYPE
    assert decode_json("42", 0).ok
