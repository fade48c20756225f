"""Tests for phoenixa.headers module."""

import pytest
from phoenixa.errors import InvalidArgumentError
from phoenixa.headers import (
    Headers,
    _sanitize_header,
    expand_header_value,
    find_header,
    join_header_values,
    update_headers,
)


class TestHeaders:
    """Tests for the Headers map."""

    def test_case_insensitive_lookup(self):
        """Test a header stored as Content-Type is found as content-type."""
        headers = Headers({"Content-Type": ["text/plain"]})
        assert headers["content-type"] == ["text/plain"]
        assert headers["CONTENT-TYPE"] == ["text/plain"]
        assert "content-type" in headers

    def test_preserves_original_case(self):
        """Test iteration yields names as they were stored."""
        headers = Headers({"X-Custom-Header": ["value"]})
        assert list(headers) == ["X-Custom-Header"]

    def test_preserves_order_of_names_and_values(self):
        """Test names and values keep insertion order."""
        headers = Headers({"B": ["2", "1"], "A": ["x"]})
        assert list(headers) == ["B", "A"]
        assert headers["b"] == ["2", "1"]

    def test_drops_empty_entries(self):
        """Test names without values are dropped."""
        headers = Headers({"Empty": [], "Full": ["1"]})
        assert "Empty" not in headers
        assert len(headers) == 1

    def test_accepts_single_string_values(self):
        """Test a plain str value is treated as one value."""
        headers = Headers({"Accept": "*/*"})
        assert headers["accept"] == ["*/*"]

    def test_case_duplicates_last_wins(self):
        """Test names differing only in case collapse to the last one."""
        headers = Headers({"X-Test": ["first"], "x-test": ["second"]})
        assert len(headers) == 1
        assert headers["X-TEST"] == ["second"]

    def test_missing_header(self):
        """Test missing names raise KeyError and get() returns default."""
        headers = Headers({"A": ["1"]})
        with pytest.raises(KeyError):
            headers["B"]
        assert headers.get("B") is None
        assert 42 not in headers

    def test_values_cannot_be_mutated_through_lookup(self):
        """Test mutating a returned list does not change the headers."""
        headers = Headers({"A": ["1"]})
        headers["a"].append("2")
        assert headers["a"] == ["1"]

    def test_rejects_invalid_value_type(self):
        """Test values must be str or list[str]."""
        with pytest.raises(InvalidArgumentError, match="Expected str or list"):
            Headers({"A": 1})

    def test_equality_with_plain_mapping(self):
        """Test Headers compare equal to an equivalent dict."""
        assert Headers({"A": ["1", "2"]}) == {"A": ["1", "2"]}

    def test_repr(self):
        """Test repr lists the headers."""
        assert repr(Headers({"A": ["1"]})) == "<Headers {'A': ['1']}>"


class TestSingleValues:
    """Tests for the comma-joined projection."""

    def test_joins_multiple_values(self):
        """Test ["a", "b"] becomes "a,b"."""
        headers = Headers({"X": ["a", "b"]})
        assert headers.single_values["x"] == "a,b"

    def test_single_value_unchanged(self):
        """Test a single value is returned as-is."""
        headers = Headers({"Content-Type": ["text/html"]})
        assert headers.single_values["content-type"] == "text/html"

    def test_is_cached(self):
        """Test the projection is computed once."""
        headers = Headers({"X": ["a"]})
        assert headers.single_values is headers.single_values

    def test_is_read_only(self):
        """Test the projection cannot be modified."""
        headers = Headers({"X": ["a"]})
        with pytest.raises(TypeError):
            headers.single_values["X"] = "b"


class TestFromMap:
    """Tests for Headers.from_map."""

    @pytest.mark.parametrize("value", [None, {}])
    def test_empty_input_returns_shared_instance(self, value):
        """Test empty input gives the canonical empty Headers."""
        assert Headers.from_map(value) is Headers.empty()

    def test_returns_headers_unchanged(self):
        """Test an existing Headers instance is reused."""
        headers = Headers({"A": ["1"]})
        assert Headers.from_map(headers) is headers

    def test_copies_plain_mapping(self):
        """Test a dict is copied and later changes do not leak in."""
        raw = {"A": ["1"]}
        headers = Headers.from_map(raw)
        raw["B"] = ["2"]
        raw["A"].append("3")
        assert dict(headers.items()) == {"A": ["1"]}


class TestHeaderHelpers:
    """Tests for the header value helpers."""

    def test_expand_header_value(self):
        """Test str, list and None are normalized to lists."""
        assert expand_header_value("a") == ["a"]
        assert expand_header_value(["a", "b"]) == ["a", "b"]
        assert expand_header_value(("a",)) == ["a"]
        assert expand_header_value(None) == []

    def test_join_header_values(self):
        """Test values are joined with commas."""
        assert join_header_values(None) is None
        assert join_header_values([]) == ""
        assert join_header_values(["a"]) == "a"
        assert join_header_values(["a", "b", "c"]) == "a,b,c"

    def test_find_header_in_plain_mapping(self):
        """Test find_header matches names case-insensitively."""
        assert find_header({"Content-Length": ["5"]}, "content-length") == "5"
        assert find_header({"X": ["a", "b"]}, "x") == "a,b"
        assert find_header({"X": ["a"]}, "y") is None
        assert find_header(None, "x") is None

    def test_find_header_in_headers(self):
        """Test find_header uses the single-value projection of Headers."""
        assert find_header(Headers({"X": ["a", "b"]}), "x") == "a,b"


class TestUpdateHeaders:
    """Tests for update_headers."""

    def test_no_changes_returns_initial(self):
        """Test nothing is copied when there is nothing to change."""
        initial = Headers({"A": ["1"]})
        assert update_headers(initial, None) is initial
        assert update_headers(initial, {}) is initial

    def test_none_removes_case_insensitively(self):
        """Test a None value removes the header whatever its case."""
        updated = update_headers(Headers({"X": ["1"], "Y": ["2"]}), {"x": None})
        assert updated == {"Y": ["2"]}

    def test_value_replaces(self):
        """Test a new value replaces all existing values."""
        updated = update_headers(Headers({"X": ["1", "2"]}), {"X": "3"})
        assert updated == {"X": ["3"]}

    def test_new_header_added(self):
        """Test unknown names are added and others preserved."""
        updated = update_headers(Headers({"A": ["1"]}), {"B": ["2", "3"]})
        assert updated == {"A": ["1"], "B": ["2", "3"]}

    def test_removing_missing_header_is_ignored(self):
        """Test removing an absent header is a no-op."""
        updated = update_headers(Headers({"A": ["1"]}), {"B": None})
        assert updated == {"A": ["1"]}


class TestSanitizeHeader:
    """Tests for header injection prevention."""

    def test_clean_header_unchanged(self):
        """Clean headers should pass through unchanged."""
        assert _sanitize_header("Content-Type", "text/plain") == ("Content-Type", "text/plain")

    @pytest.mark.parametrize("payload,description", [
        ("test\r\nX-Injected: pwned", "Basic CRLF injection"),
        ("test\nX-Injected: pwned", "LF-only injection"),
        ("test\rX-Injected: pwned", "CR-only injection"),
        ("test\x00X-Injected: pwned", "Null byte injection"),
        ("value\r\nTransfer-Encoding: chunked\r\n\r\n0\r\n\r\n", "Smuggling attempt"),
    ])
    def test_injection_payload_sanitized(self, payload, description):
        """Test that injection payloads are stripped of CR, LF and NUL."""
        _, value = _sanitize_header("Test-Header", payload)
        assert "\r" not in value, f"CR found in sanitized value for: {description}"
        assert "\n" not in value, f"LF found in sanitized value for: {description}"
        assert "\x00" not in value, f"Null byte found in sanitized value for: {description}"

    def test_headers_sanitize_names_and_values(self):
        """Test Headers strips injection characters on construction."""
        headers = Headers({"X-Custom\r\n": ["a\r\nSet-Cookie: evil=1"]})
        assert list(headers) == ["X-Custom"]
        assert headers["x-custom"] == ["aSet-Cookie: evil=1"]
        assert "set-cookie" not in headers
