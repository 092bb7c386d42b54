"""Tests for client IP resolution."""

from sitepulse.utils.client_ip import get_client_ip


def _event(headers=None, multi_value_headers=None, request_context=None):
    event = {"headers": headers or {}}
    if multi_value_headers is not None:
        event["multiValueHeaders"] = multi_value_headers
    if request_context is not None:
        event["requestContext"] = request_context
    return event


class TestGetClientIp:
    """Tests for get_client_ip."""

    def test_cdn_header_wins(self):
        """CF-Connecting-IP takes precedence over everything else."""
        event = _event(
            headers={"CF-Connecting-IP": "198.51.100.1", "X-Forwarded-For": "203.0.113.5"},
            request_context={"identity": {"sourceIp": "10.0.0.1"}},
        )

        assert get_client_ip(event) == "198.51.100.1"

    def test_cdn_header_is_case_insensitive(self):
        """Header lookup ignores case."""
        event = _event(headers={"cf-connecting-ip": "198.51.100.1"})

        assert get_client_ip(event) == "198.51.100.1"

    def test_forwarded_for_first_entry(self):
        """The first X-Forwarded-For entry is the originating client."""
        event = _event(headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.2, 10.0.0.3"})

        assert get_client_ip(event) == "203.0.113.5"

    def test_multi_value_forwarded_for(self):
        """Multi-valued X-Forwarded-For uses the first value's first entry."""
        event = _event(
            headers={"X-Forwarded-For": "192.0.2.99"},
            multi_value_headers={"x-forwarded-for": ["203.0.113.5, 10.0.0.2", "192.0.2.99"]},
        )

        assert get_client_ip(event) == "203.0.113.5"

    def test_rest_api_source_ip(self):
        """Falls back to the REST API peer address."""
        event = _event(request_context={"identity": {"sourceIp": "192.0.2.44"}})

        assert get_client_ip(event) == "192.0.2.44"

    def test_http_api_source_ip(self):
        """Falls back to the HTTP API peer address."""
        event = _event(request_context={"http": {"sourceIp": "192.0.2.45"}})

        assert get_client_ip(event) == "192.0.2.45"

    def test_nothing_available(self):
        """Returns an empty string instead of raising."""
        assert get_client_ip({}) == ""
        assert get_client_ip({"headers": None, "requestContext": None}) == ""
