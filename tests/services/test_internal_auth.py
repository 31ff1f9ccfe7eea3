from __future__ import annotations

from types import SimpleNamespace

from fitpass.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
    is_valid_internal_token,
)


def test_is_valid_internal_token_requires_exact_match() -> None:
    assert is_valid_internal_token(expected_token="secret", received_token="secret") is True
    assert is_valid_internal_token(expected_token="secret", received_token="wrong") is False
    assert is_valid_internal_token(expected_token="secret", received_token=None) is False
    assert is_valid_internal_token(expected_token="", received_token="") is False


def test_is_internal_request_authenticated_accepts_header_or_bearer() -> None:
    with_header = SimpleNamespace(headers={"X-Internal-Token": "secret"})
    with_bearer = SimpleNamespace(headers={"Authorization": "Bearer secret"})
    with_basic = SimpleNamespace(headers={"Authorization": "Basic secret"})
    without_credentials = SimpleNamespace(headers={})

    assert is_internal_request_authenticated(with_header, expected_token="secret") is True
    assert is_internal_request_authenticated(with_bearer, expected_token="secret") is True
    assert is_internal_request_authenticated(with_basic, expected_token="secret") is False
    assert is_internal_request_authenticated(without_credentials, expected_token="secret") is False


def test_is_client_ip_allowed_supports_exact_ip_and_cidr() -> None:
    allowlist = "127.0.0.1,10.0.0.0/8, not-a-network"
    assert is_client_ip_allowed(client_ip="127.0.0.1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="10.12.33.1", allowlist=allowlist) is True
    assert is_client_ip_allowed(client_ip="192.168.1.5", allowlist=allowlist) is False
    assert is_client_ip_allowed(client_ip=None, allowlist=allowlist) is False


def test_extract_client_ip_uses_forwarded_header_only_for_trusted_proxy() -> None:
    request = SimpleNamespace(
        headers={"X-Forwarded-For": "10.1.1.8, 127.0.0.1"},
        client=SimpleNamespace(host="127.0.0.1"),
    )
    assert extract_client_ip(request, trusted_proxies="127.0.0.1/32") == "10.1.1.8"
    assert extract_client_ip(request) == "127.0.0.1"


def test_extract_client_ip_ignores_forwarded_header_for_untrusted_proxy() -> None:
    request = SimpleNamespace(
        headers={"X-Forwarded-For": "10.1.1.8"},
        client=SimpleNamespace(host="198.51.100.10"),
    )
    assert extract_client_ip(request, trusted_proxies="127.0.0.1/32") == "198.51.100.10"


def test_extract_client_ip_rejects_invalid_forwarded_value() -> None:
    request = SimpleNamespace(
        headers={"X-Forwarded-For": "not-an-ip, 127.0.0.1"},
        client=SimpleNamespace(host="127.0.0.1"),
    )
    assert extract_client_ip(request, trusted_proxies="127.0.0.1/32") is None


def test_extract_client_ip_without_client() -> None:
    request = SimpleNamespace(headers={}, client=None)
    assert extract_client_ip(request) is None
