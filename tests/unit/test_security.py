"""입력 보안 검증 테스트"""

from __future__ import annotations

import pytest

from property_engine.core.logging import sanitize_for_log
from property_engine.core.security import SecurityValidator


@pytest.mark.parametrize(
    "query",
    [
        "affordable homes in Houston",
        "123 Main St #4, Houston, TX",
        "O'Fallon homes",
        "1600-A Elm St, Mountain View, CA",
    ],
)
def test_valid_queries(query):
    assert SecurityValidator.validate_query(query) is True


@pytest.mark.parametrize(
    "query",
    [
        "",
        "   ",
        "x" * 501,
        "<script>alert(1)</script>",
        "homes; DROP TABLE resolution_logs",
        "homes -- comment",
        'homes "quoted"',
        "line\nbreak",
    ],
)
def test_invalid_queries(query):
    with pytest.raises(ValueError):
        SecurityValidator.validate_query(query)


def test_validate_field():
    assert SecurityValidator.validate_field("city", None) is True
    assert SecurityValidator.validate_field("city", "Mountain View") is True
    with pytest.raises(ValueError):
        SecurityValidator.validate_field("address1", "1 Main St /* x */")
    with pytest.raises(ValueError):
        SecurityValidator.validate_field("city", "a" * 201)


@pytest.mark.parametrize(
    "lat, lng, valid",
    [
        (None, None, True),
        (37.42, -122.08, True),
        (37.42, None, False),
        (None, -122.08, False),
        (91.0, 0.0, False),
        (0.0, -181.0, False),
    ],
)
def test_validate_coordinates(lat, lng, valid):
    if valid:
        assert SecurityValidator.validate_coordinates(lat, lng) is True
    else:
        with pytest.raises(ValueError):
            SecurityValidator.validate_coordinates(lat, lng)


def test_sanitize_for_log():
    assert sanitize_for_log("") == "[empty]"
    assert sanitize_for_log("Bearer abc") == "***"
    assert sanitize_for_log("x" * 120) == "x" * 100 + "..."
