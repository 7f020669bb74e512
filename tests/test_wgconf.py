import os

import pytest

import wgconf


PEER_CONF = """[Interface]
PrivateKey = abc=
Address = 10.8.0.2/32

[Peer]
PublicKey = def=
AllowedIPs = 0.0.0.0/0
Endpoint = {endpoint}
"""


@pytest.mark.parametrize("value, host", [
    ("10.0.0.1:51820", "10.0.0.1"),
    ("[2001:db8::1]:51820", "2001:db8::1"),
    ("vpn.example.com:51820", "vpn.example.com"),
    ("vpn.example.com", "vpn.example.com"),
    ("10.0.0.1:51820  # home", "10.0.0.1"),
])
def test_extract_host_strips_port(value, host):
    assert wgconf.extract_host(value) == host


@pytest.mark.parametrize("value", [
    "host:51820:extra",
    "2001:db8::1",
    "",
    ":51820",
])
def test_extract_host_rejects_malformed(value):
    assert wgconf.extract_host(value) is None


def test_endpoint_outside_peer_section_is_ignored():
    text = "[Interface]\nEndpoint = 1.1.1.1:51820\n[Peer]\nEndpoint = 2.2.2.2:51820\n"
    assert list(wgconf.read_endpoint_values(text)) == ["2.2.2.2:51820"]


def test_every_peer_section_contributes():
    text = (
        "[Peer]\nEndpoint = a.example:1\n"
        "[Interface]\nEndpoint = skipped:2\n"
        "[peer]\nendpoint=b.example:3 # second\r\n"
    )
    assert list(wgconf.read_endpoint_values(text)) == ["a.example:1", "b.example:3"]


def test_read_endpoints_skips_malformed_line(write_conf, caplog):
    path = write_conf("bad.conf", PEER_CONF.format(endpoint="host:51820:extra"))
    assert wgconf.read_endpoints(path) == []
    assert "malformed endpoint" in caplog.text


def test_read_endpoints_unreadable_file_is_skipped(tmp_path, caplog):
    missing = str(tmp_path / "gone.conf")
    assert wgconf.read_endpoints(missing) == []
    assert "skipping" in caplog.text


def test_read_endpoints_undecodable_file_is_skipped(tmp_path):
    path = tmp_path / "binary.conf"
    path.write_bytes(b"\xff\xfe[Peer]\n\xff")
    assert wgconf.read_endpoints(str(path)) == []


def test_scan_endpoints_keeps_source(write_conf):
    a = write_conf("a.conf", PEER_CONF.format(endpoint="10.0.0.1:51820"))
    b = write_conf("b.conf", PEER_CONF.format(endpoint="[2001:db8::1]:51820"))
    assert wgconf.scan_endpoints([a, b]) == [
        {"host": "10.0.0.1", "source_path": a},
        {"host": "2001:db8::1", "source_path": b},
    ]


def test_find_config_files_recursive_and_sorted(write_conf, tmp_path):
    write_conf("b.conf", "")
    write_conf("a.conf", "")
    write_conf("notes.txt", "")
    write_conf(os.path.join("sub", "c.conf"), "")

    found = wgconf.find_config_files(str(tmp_path))
    assert [os.path.relpath(p, tmp_path) for p in found] == ["a.conf", "b.conf", os.path.join("sub", "c.conf")]

    flat = wgconf.find_config_files(str(tmp_path), recursive=False)
    assert [os.path.basename(p) for p in flat] == ["a.conf", "b.conf"]
