import socket
from unittest import mock

import pytest

from zpscan.cdn import check_cdn, check_wildcard, ip_contains


def test_check_cdn_without_data_is_false():
    assert check_cdn("42.236.6.1", [], []) is False


def test_check_cdn_ip_in_block():
    assert check_cdn("42.236.6.1", [], ["10.0.0.0/8", "42.236.6.0/24"]) is True


def test_check_cdn_ip_outside_blocks():
    assert check_cdn("42.236.7.1", [], ["42.236.6.0/24"]) is False


def test_check_cdn_cname_match():
    answer = "CNAME www.example.com.cdn.example.net"
    assert check_cdn(answer, ["cdn.example.net"], ["0.0.0.0/0"]) is True


def test_check_cdn_cname_ignores_ip_blocks():
    answer = "CNAME www.example.org"
    assert check_cdn(answer, ["cdn.example.net"], ["0.0.0.0/0"]) is False


@pytest.mark.parametrize(
    ("cidr", "ip", "expected"),
    [
        ("192.168.1.0/24", "192.168.1.77", True),
        ("192.168.1.0/24", "192.168.2.1", False),
        ("192.168.1.5/24", "192.168.1.200", True),
        ("not-a-cidr", "192.168.1.1", False),
        ("192.168.1.0", "192.168.1.0", False),
        ("192.168.1.0/24", "garbage", False),
        ("2001:db8::/32", "2001:db8::1", True),
        ("2001:db8::/32", "192.168.1.1", False),
    ],
)
def test_ip_contains(cidr, ip, expected):
    assert ip_contains(cidr, ip) is expected


def test_check_wildcard_true_when_random_name_resolves():
    with mock.patch("socket.getaddrinfo", return_value=[("x",)]) as lookup:
        assert check_wildcard("example.com") is True
    name = lookup.call_args[0][0]
    assert name.endswith(".example.com")
    assert len(name) > len(".example.com")


def test_check_wildcard_false_when_lookups_fail():
    with mock.patch(
        "socket.getaddrinfo", side_effect=socket.gaierror("no such host")
    ) as lookup:
        assert check_wildcard("example.com") is False
    assert lookup.call_count == 2


def test_check_wildcard_uses_fresh_names():
    with mock.patch(
        "socket.getaddrinfo", side_effect=socket.gaierror("no such host")
    ) as lookup:
        assert check_wildcard("example.com") is False
    first, second = (call[0][0] for call in lookup.call_args_list)
    assert first != second
    assert first.endswith(".example.com")
    assert second.endswith(".example.com")