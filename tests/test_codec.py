import pytest

from gfn_socks_proxy.core.exceptions import ProtocolError, UnsupportedAddressType, UnsupportedCommand
from gfn_socks_proxy.core.lib.codec import (
    ATYP_DOMAIN,
    ATYP_IPV4,
    ATYP_IPV6,
    METHOD_NO_ACCEPTABLE,
    METHOD_NO_AUTH,
    METHOD_USER_PASS,
    REP_SUCCESS,
    Reply,
    address_length,
    decode_connect_request,
    decode_method_negotiation,
    decode_user_pass_auth,
    encode_auth_result,
    encode_method_selection,
    encode_reply,
)


class TestMethodNegotiation:
    def test_decodes_offered_methods(self):
        result = decode_method_negotiation(b"\x05\x02\x00\x02")
        assert result.methods == frozenset({METHOD_NO_AUTH, METHOD_USER_PASS})

    def test_ignores_bytes_past_method_count(self):
        assert decode_method_negotiation(b"\x05\x01\x00\x02").methods == frozenset({0x00})

    @pytest.mark.parametrize("data", [b"", b"\x05", b"\x05\x00", b"\x04\x01\x00"])
    def test_rejects_short_or_wrong_version(self, data):
        with pytest.raises(ProtocolError):
            decode_method_negotiation(data)

    @pytest.mark.parametrize(
        ("method", "expected"),
        [(METHOD_NO_AUTH, b"\x05\x00"), (METHOD_USER_PASS, b"\x05\x02"), (METHOD_NO_ACCEPTABLE, b"\x05\xff")],
    )
    def test_encodes_selection(self, method, expected):
        assert encode_method_selection(method) == expected


class TestUserPassAuth:
    def test_decodes_credentials(self):
        creds = decode_user_pass_auth(b"\x01\x04user\x06secret")
        assert (creds.username, creds.password) == ("user", "secret")

    def test_allows_empty_password(self):
        creds = decode_user_pass_auth(b"\x01\x01u\x00")
        assert (creds.username, creds.password) == ("u", "")

    @pytest.mark.parametrize(
        "data",
        [
            b"\x02\x04user\x06secret",  # wrong sub-version
            b"\x01",
            b"\x01\x04us",  # truncated username
            b"\x01\x04user",  # missing password length
            b"\x01\x04user\x06sec",  # truncated password
        ],
    )
    def test_rejects_malformed(self, data):
        with pytest.raises(ProtocolError):
            decode_user_pass_auth(data)

    def test_encodes_result(self):
        assert encode_auth_result(True) == b"\x01\x00"
        assert encode_auth_result(False) == b"\x01\xff"


class TestConnectRequest:
    def test_ipv4_target(self):
        request = decode_connect_request(bytes([5, 1, 0, 1, 192, 168, 1, 1]) + (8080).to_bytes(2, "big"))
        assert request.address_type == ATYP_IPV4
        assert (request.host, request.port) == ("192.168.1.1", 8080)
        assert not request.is_domain

    def test_domain_target(self):
        data = bytes([5, 1, 0, 3, 11]) + b"example.com" + (443).to_bytes(2, "big")
        request = decode_connect_request(data)
        assert request.address_type == ATYP_DOMAIN
        assert (request.host, request.port) == ("example.com", 443)
        assert request.is_domain

    def test_ipv6_target_is_rendered_as_eight_groups(self):
        data = bytes([5, 1, 0, 4]) + bytes(15) + b"\x01" + (80).to_bytes(2, "big")
        request = decode_connect_request(data)
        assert request.address_type == ATYP_IPV6
        assert request.host == "0:0:0:0:0:0:0:1"
        assert request.port == 80

    def test_ipv6_groups_are_hex(self):
        raw = bytes.fromhex("20010db8000000000000000000abcdef")
        request = decode_connect_request(bytes([5, 1, 0, 4]) + raw + b"\x00\x16")
        assert request.host == "2001:db8:0:0:0:0:ab:cdef"

    def test_port_boundaries(self):
        base = bytes([5, 1, 0, 1, 10, 0, 0, 1])
        assert decode_connect_request(base + b"\x00\x00").port == 0
        assert decode_connect_request(base + b"\xff\xff").port == 65535

    @pytest.mark.parametrize("command", [0x02, 0x03, 0x00, 0x7F])
    def test_rejects_other_commands(self, command):
        with pytest.raises(UnsupportedCommand) as excinfo:
            decode_connect_request(bytes([5, command, 0, 1, 127, 0, 0, 1, 0, 80]))
        assert excinfo.value.command == command

    @pytest.mark.parametrize("address_type", [0x00, 0x02, 0x05, 0xFF])
    def test_rejects_unknown_address_types(self, address_type):
        with pytest.raises(UnsupportedAddressType) as excinfo:
            decode_connect_request(bytes([5, 1, 0, address_type]))
        assert excinfo.value.address_type == address_type

    def test_command_is_checked_before_address_type(self):
        with pytest.raises(UnsupportedCommand):
            decode_connect_request(bytes([5, 2, 0, 9]))

    @pytest.mark.parametrize(
        "data",
        [
            b"\x04\x01\x00\x01\x7f\x00\x00\x01\x00\x50",  # SOCKS4 version
            b"\x05\x01\x00",
            b"\x05\x01\x00\x01\x7f\x00\x00",  # truncated IPv4
            b"\x05\x01\x00\x01\x7f\x00\x00\x01\x00",  # truncated port
            b"\x05\x01\x00\x03",  # missing domain length
            b"\x05\x01\x00\x03\x0bexample",  # truncated domain
            b"\x05\x01\x00\x04" + bytes(10),  # truncated IPv6
        ],
    )
    def test_rejects_truncated_or_bad_version(self, data):
        with pytest.raises(ProtocolError):
            decode_connect_request(data)

    def test_rejects_invalid_utf8_domain(self):
        with pytest.raises(ProtocolError):
            decode_connect_request(b"\x05\x01\x00\x03\x02\xff\xfe\x00\x50")


class TestReply:
    def test_default_reply(self):
        assert encode_reply(0x01) == b"\x05\x01\x00\x01\x00\x00\x00\x00\x00\x00"

    def test_bound_address_and_port(self):
        reply = encode_reply(REP_SUCCESS, "10.1.2.3", 54321)
        assert len(reply) == 10
        assert reply[:4] == b"\x05\x00\x00\x01"
        assert reply[4:8] == bytes([10, 1, 2, 3])
        assert int.from_bytes(reply[8:], "big") == 54321

    def test_ipv6_bound_address_falls_back_to_ipv4_form(self):
        reply = encode_reply(REP_SUCCESS, "::1", 1080)
        assert reply[3] == ATYP_IPV4
        assert reply[4:8] == bytes(4)
        assert int.from_bytes(reply[8:], "big") == 1080

    def test_reply_dataclass_matches_encoder(self):
        assert Reply(0x07).to_bytes() == encode_reply(0x07)


def test_address_length():
    assert address_length(ATYP_IPV4) == 4
    assert address_length(ATYP_IPV6) == 16
    assert address_length(ATYP_DOMAIN, 11) == 11
    assert address_length(0x09) == 0
