import re
import pytest
from jpegid.config.patterns import DEFAULT_FILE_PATTERNS, compile_pattern


def test_default_pattern_matches_jpeg_extensions_case_insensitively():
    pattern = compile_pattern(DEFAULT_FILE_PATTERNS[0])
    assert pattern.search("a.jpg")
    assert pattern.search("B.JPEG")
    assert pattern.search("c.Jpg")
    assert not pattern.search("d.png")
    assert not pattern.search("jpg.txt")


def test_dot_before_letter_is_literal():
    pattern = compile_pattern(".jpg")
    assert pattern.pattern == r"\.jpg"
    assert pattern.search("IMG_0001.jpg")
    assert not pattern.search("IMG_0001xjpg")


def test_wildcard_dot_kept_when_not_followed_by_letter():
    pattern = compile_pattern("IMG_.*.jpg")
    assert pattern.pattern == r"IMG_.*\.jpg"
    assert pattern.search("IMG_0001.jpg")
    assert not pattern.search("IMG_0001xjpg")


def test_already_escaped_dot_is_not_escaped_twice():
    assert compile_pattern(r"\.jpg").pattern == r"\.jpg"


def test_leading_dot_slash_is_stripped():
    assert compile_pattern("./x.jpg").pattern == r"x\.jpg"


def test_pattern_without_dot_is_unchanged():
    assert compile_pattern("^IMG_[0-9]+").pattern == "^IMG_[0-9]+"


def test_dot_followed_by_non_ascii_letter_is_kept():
    assert compile_pattern(".é").pattern == ".é"


def test_invalid_pattern_raises():
    with pytest.raises(re.error):
        compile_pattern("(.jpg")
