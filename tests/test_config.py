import dataclasses

import pytest

from gfn_socks_proxy.core.config import (
    DEFAULT_PUBLIC_PROXIES,
    GEFORCE_NOW_DOMAINS,
    ProxyEndpoint,
    ServerConfig,
)


def test_defaults():
    config = ServerConfig()
    assert (config.host, config.port) == ("0.0.0.0", 1080)
    assert not config.auth
    assert config.negotiation_timeout == 10.0
    assert config.dial_timeout == 15.0
    assert config.public_proxies == DEFAULT_PUBLIC_PROXIES
    assert len(config.public_proxies) == 5
    assert config.allowed_domains == GEFORCE_NOW_DOMAINS
    assert not config.enforce_allowlist


def test_is_immutable():
    config = ServerConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.port = 9050


def test_from_env_reads_socks5_variables():
    env = {
        "SOCKS5_HOST": "127.0.0.1",
        "SOCKS5_PORT": "9050",
        "SOCKS5_AUTH": "true",
        "SOCKS5_USERNAME": "gamer",
        "SOCKS5_PASSWORD": "s3cret",
    }
    config = ServerConfig.from_env(env)
    assert (config.host, config.port) == ("127.0.0.1", 9050)
    assert config.auth
    assert (config.username, config.password) == ("gamer", "s3cret")


def test_from_env_auth_requires_literal_true():
    assert not ServerConfig.from_env({"SOCKS5_AUTH": "yes"}).auth


def test_overrides_take_precedence_and_none_is_ignored():
    config = ServerConfig.from_env({"SOCKS5_PORT": "9050"}, port=1081, host=None)
    assert config.port == 1081
    assert config.host == "0.0.0.0"


def test_with_overrides_returns_copy():
    config = ServerConfig()
    changed = config.with_overrides(port=0)
    assert changed.port == 0
    assert config.port == 1080


@pytest.mark.parametrize("port", [-1, 65536])
def test_rejects_out_of_range_port(port):
    with pytest.raises(ValueError, match="Port"):
        ServerConfig(port=port)


def test_auth_requires_credentials():
    with pytest.raises(ValueError, match="username and a password"):
        ServerConfig(auth=True, username="gamer")


def test_rejects_non_positive_timeouts():
    with pytest.raises(ValueError):
        ServerConfig(dial_timeout=0)


@pytest.mark.parametrize(
    ("host", "allowed"),
    [
        ("play.geforcenow.com", True),
        ("eu.play.geforcenow.com", True),
        ("geforcenow.com", True),
        ("example.com", False),
    ],
)
def test_domain_allowlist(host, allowed):
    assert ServerConfig().is_allowed_domain(host) is allowed


def test_endpoint_str():
    assert str(ProxyEndpoint("1.2.3.4", 1080, "US")) == "1.2.3.4:1080"
