import pytest

from precachegen.errors import (
    AmbiguousInjectionPoint,
    InjectionPointNotFound,
    E_INJECTION_POINT_AMBIGUOUS,
    E_INJECTION_POINT_NOT_FOUND,
)
from precachegen.locator import (
    count_occurrences,
    line_column,
    locate_injection_point,
)

MARKER = "self.__WB_MANIFEST"


def test_single_occurrence_returns_offset():
    text = "import x;\nprecacheAndRoute(self.__WB_MANIFEST);\n"
    assert locate_injection_point(text, MARKER) == text.index(MARKER)


def test_missing_marker_is_fatal():
    with pytest.raises(InjectionPointNotFound) as info:
        locate_injection_point("precacheAndRoute([]);", MARKER)
    assert info.value.code == E_INJECTION_POINT_NOT_FOUND
    assert MARKER in str(info.value)


def test_multiple_markers_are_fatal():
    text = f"a({MARKER});\nb({MARKER});"
    with pytest.raises(AmbiguousInjectionPoint) as info:
        locate_injection_point(text, MARKER)
    assert info.value.code == E_INJECTION_POINT_AMBIGUOUS
    assert info.value.context["count"] == 2
    assert "only once" in str(info.value)


def test_marker_is_matched_literally():
    # '.' must not match an arbitrary character
    text = "selfX__WB_MANIFEST; self.__WB_MANIFEST"
    assert count_occurrences(text, MARKER) == 1
    assert locate_injection_point(text, MARKER) == text.rindex(MARKER)


def test_regex_metacharacters_in_marker():
    marker = "$[manifest](*)?"
    text = f"const m = {marker};"
    assert locate_injection_point(text, marker) == 10


def test_line_column_is_zero_based():
    text = "first\nsecond MARK"
    offset = text.index("MARK")
    assert line_column(text, offset) == (1, 7)
