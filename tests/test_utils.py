"""Formatting helpers."""

import pytest

from tasksync.utils import bytes_to_readable


@pytest.mark.parametrize(
    "num_bytes,digits,expected",
    [
        (0, 0, "0B"),
        (-5, 0, "0B"),
        (512, 0, "512B"),
        (1024, 0, "1KB"),
        (1536, 1, "1.5KB"),
        (2 * 1024 * 1024, 0, "2MB"),
        (5 * 1024**4, 0, "5TB"),
    ],
)
def test_bytes_to_readable(num_bytes, digits, expected):
    assert bytes_to_readable(num_bytes, digits) == expected


def test_readable_size_has_no_space_before_unit():
    assert bytes_to_readable(1500000, 2) == "1.43MB"
    assert bytes_to_readable(3000000000, 1) == "2.8GB"
