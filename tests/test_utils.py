from __future__ import annotations

from datetime import date

import pytest

from tracker.utils import bytes_to_data_url, data_url_to_bytes, num, parse_iso_date


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-03-10", date(2025, 3, 10)),
        ("2024-01-01T09:30:00.000Z", date(2024, 1, 1)),
        ("10/03/2025", None),
        ("Mon Mar 10 2025", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_iso_date(value, expected):
    assert parse_iso_date(value) == expected


@pytest.mark.parametrize("value", [None, "", "abc", -3, float("inf"), True])
def test_num_treats_junk_as_zero(value):
    assert num(value) == 0.0


def test_data_url_helpers(png_bytes):
    url = bytes_to_data_url(png_bytes)
    assert url.startswith("data:image/png;base64,")
    assert data_url_to_bytes(url) == png_bytes
    with pytest.raises(ValueError):
        data_url_to_bytes("data:text/plain,hello")
