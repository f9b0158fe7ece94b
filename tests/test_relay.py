import socket
import threading

import pytest

from gfn_socks_proxy.core.lib.relay import RelayPump


@pytest.fixture
def pairs():
    client_peer, client = socket.socketpair()
    target, target_peer = socket.socketpair()
    for sock in (client_peer, target_peer):
        sock.settimeout(3.0)
    yield client_peer, client, target, target_peer
    for sock in (client_peer, client, target, target_peer):
        sock.close()


def start(pump):
    thread = threading.Thread(target=pump.run, daemon=True)
    thread.start()
    return thread


def test_forwards_both_directions_unmodified(pairs):
    client_peer, client, target, target_peer = pairs
    seen = []
    pump = RelayPump(client, target, on_bytes=lambda sent, received: seen.append((sent, received)))
    thread = start(pump)

    payload = bytes(range(256)) * 4
    client_peer.sendall(payload)
    received = b""
    while len(received) < len(payload):
        received += target_peer.recv(4096)
    assert received == payload

    target_peer.sendall(b"pong")
    assert client_peer.recv(4) == b"pong"

    client_peer.close()
    thread.join(timeout=3)
    assert not thread.is_alive()
    assert pump.done.is_set()
    assert pump.result.client_to_target == len(payload)
    assert pump.result.target_to_client == 4
    assert sum(sent for sent, _ in seen) == len(payload)
    assert sum(recv for _, recv in seen) == 4


def test_client_close_closes_target(pairs):
    client_peer, client, target, target_peer = pairs
    thread = start(RelayPump(client, target))
    client_peer.close()
    assert target_peer.recv(1) == b""
    thread.join(timeout=3)
    assert not thread.is_alive()


def test_target_close_closes_client(pairs):
    client_peer, client, target, target_peer = pairs
    pump = RelayPump(client, target)
    thread = start(pump)
    target_peer.close()
    assert client_peer.recv(1) == b""
    thread.join(timeout=3)
    assert not thread.is_alive()
    assert pump.closed


def test_explicit_close_unblocks_both_loops(pairs):
    _, client, target, _ = pairs
    pump = RelayPump(client, target)
    thread = start(pump)
    pump.close()
    thread.join(timeout=3)
    assert not thread.is_alive()


def test_close_is_idempotent(pairs):
    _, client, target, _ = pairs
    pump = RelayPump(client, target)
    pump.close()
    pump.close()
    assert pump.closed
    assert client.fileno() == -1
    assert target.fileno() == -1
