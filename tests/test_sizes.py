import pytest

from precachegen.utils.sizes import format_bytes


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (1000, "1 kB"),
        (1500, "1.5 kB"),
        (2_097_152, "2.1 MB"),
        (123_456_789, "123 MB"),
    ],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected
