import json

import pytest

from ndp_solicit import cli
from ndp_solicit.core.errors import PermissionDenied, SendFailure
from ndp_solicit.core.raw_socket import MemoryRawSender


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in ("NDP_SOLICIT_NETWORK_TIMEOUT", "NDP_SOLICIT_NETWORK_INTERFACE",
                "NDP_SOLICIT_GENERAL_LOG_LEVEL", "NDP_SOLICIT_GENERAL_COLORS_ENABLED",
                "NDP_SOLICIT_OUTPUT_PCAP_FILE"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(cli, 'is_root', lambda: True)


@pytest.fixture
def sender(monkeypatch):
    """Replace the raw socket sender with an in-memory one."""
    memory = MemoryRawSender()
    monkeypatch.setattr(cli, 'SocketRawSender', lambda: memory)
    return memory


def test_missing_interface_exits_1(capsys, sender):
    assert cli.main(['-s', '2001:db8::1', '-d', '2001:db8::2']) == 1
    assert 'iface' in capsys.readouterr().err
    assert sender.attempts == 0


def test_manual_mode_requires_src_and_dst(fake_interface, sender):
    assert cli.main(['-i', 'eth0', '-s', '2001:db8::1']) == 1
    assert cli.main(['-i', 'eth0', '-d', '2001:db8::1']) == 1
    assert sender.attempts == 0


def test_invalid_address_exits_1(fake_interface, sender, capsys):
    assert cli.main(['-i', 'eth0', '-s', 'not-an-ip', '-d', '2001:db8::2']) == 1
    assert 'not-an-ip' in capsys.readouterr().err
    assert sender.attempts == 0


def test_unknown_interface_exits_1(fake_interface, sender, capsys):
    assert cli.main(['-i', 'eth9', '-s', '2001:db8::1', '-d', '2001:db8::2']) == 1
    assert 'eth9' in capsys.readouterr().err
    assert sender.attempts == 0


def test_manual_mode_success(fake_interface, sender, capsys):
    assert cli.main(['-i', 'eth0', '-s', '2001:db8::1', '-d', '2001:db8::abcd:ef01:2345']) == 0
    assert len(sender.sent) == 1
    _, context = sender.sent[0]
    assert context.destination_str == 'ff02::1:ff01:2345'
    assert 'ff02::1:ff01:2345' in capsys.readouterr().out


def test_manual_mode_send_failure_exits_1(fake_interface, sender):
    sender.fail_with = PermissionDenied("cannot open raw socket")
    assert cli.main(['-i', 'eth0', '-s', '2001:db8::1', '-d', '2001:db8::2']) == 1


def test_auto_mode_three_addresses(fake_interface, sender, capsys):
    assert cli.main(['-i', 'eth0', '--gateway']) == 0
    assert sender.attempts == 3
    out = capsys.readouterr().out
    assert 'fe80::1' in out
    assert 'Found 3 IPv6 addresses' in out


def test_auto_mode_failures_still_exit_0(fake_interface, sender, capsys):
    sender.fail_with = SendFailure("write failed")
    assert cli.main(['-i', 'eth0', '--gateway']) == 0
    assert sender.attempts == 3
    assert 'Failed to send NS request from 2001:db8::20' in capsys.readouterr().err


def test_auto_mode_strict(fake_interface, sender):
    sender.fail_with = SendFailure("write failed")
    assert cli.main(['-i', 'eth0', '--gateway', '--strict']) == 1


def test_auto_mode_ignores_manual_fields(fake_interface, sender):
    assert cli.main(['-i', 'eth0', '-g', '-s', '2001:db8::1', '-d', '2001:db8::2']) == 0
    assert {ctx.destination_str for _, ctx in sender.sent} == {'ff02::1:ff00:1'}


def test_dry_run_prints_packet(fake_interface, monkeypatch, capsys):
    monkeypatch.setattr(cli, 'SocketRawSender', lambda: pytest.fail("socket sender used"))
    assert cli.main(['-i', 'eth0', '-s', '2001:db8::1', '-d', '2001:db8::abcd:ef01:2345',
                     '--dry-run']) == 0
    out = capsys.readouterr().out
    assert '[dry-run]' in out
    assert '0101aabbccddeeff' in out


def test_timeout_option(fake_interface, sender):
    assert cli.main(['-i', 'eth0', '-s', '2001:db8::1', '-d', '2001:db8::2',
                     '--timeout', '1.5']) == 0
    assert sender.sent[0][1].timeout == 1.5


@pytest.mark.parametrize("value", ['0', '-1', 'soon'])
def test_invalid_timeout_is_a_usage_error(value):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(['-i', 'eth0', '--gateway', '--timeout', value])
    assert excinfo.value.code == 2


def test_config_file_supplies_interface_and_timeout(fake_interface, sender, tmp_path):
    path = tmp_path / "conf.json"
    path.write_text(json.dumps({"network": {"interface": "eth0", "timeout": 4}}))
    assert cli.main(['-c', str(path), '-s', '2001:db8::1', '-d', '2001:db8::2']) == 0
    assert sender.sent[0][1].interface == 'eth0'
    assert sender.sent[0][1].timeout == 4


def test_invalid_config_exits_1(tmp_path, sender):
    path = tmp_path / "conf.json"
    path.write_text(json.dumps({"network": {"timeout": -3}}))
    assert cli.main(['-c', str(path), '-i', 'eth0', '--gateway']) == 1


def test_init_config(tmp_path):
    path = tmp_path / "new.json"
    assert cli.main(['--init-config', str(path)]) == 0
    assert json.loads(path.read_text())["network"]["timeout"] is None


def test_pcap_capture(fake_interface, sender, tmp_path):
    path = tmp_path / "ns.pcap"
    assert cli.main(['-i', 'eth0', '--gateway', '--pcap', str(path)]) == 0
    data = path.read_bytes()
    # global header + 3 * (record header + 14 ethernet + 40 ipv6 + 32 icmpv6)
    assert len(data) == 24 + 3 * (16 + 14 + 40 + 32)


def test_numeric_interface_from_env_is_looked_up(fake_interface, sender, monkeypatch, capsys):
    monkeypatch.setenv("NDP_SOLICIT_NETWORK_INTERFACE", "1234")
    assert cli.main(['-s', '2001:db8::1', '-d', '2001:db8::2']) == 1
    assert '1234' in capsys.readouterr().err
    assert sender.attempts == 0


def test_invalid_interface_from_env_exits_1(sender, monkeypatch, capsys):
    monkeypatch.setenv("NDP_SOLICIT_NETWORK_INTERFACE", "eth0;reboot")
    assert cli.main(['-s', '2001:db8::1', '-d', '2001:db8::2']) == 1
    assert 'NDP_SOLICIT_NETWORK_INTERFACE' in capsys.readouterr().err
    assert sender.attempts == 0


def test_invalid_log_level_from_env_exits_1(monkeypatch):
    monkeypatch.setenv("NDP_SOLICIT_GENERAL_LOG_LEVEL", "LOUD")
    assert cli.main(['-i', 'eth0', '--gateway']) == 1


def test_numeric_pcap_file_from_env(fake_interface, sender, tmp_path, monkeypatch):
    monkeypatch.setenv("NDP_SOLICIT_OUTPUT_PCAP_FILE", "123")
    assert cli.main(['-i', 'eth0', '-s', '2001:db8::1', '-d', '2001:db8::2']) == 0
    assert (tmp_path / "123").stat().st_size == 24 + 16 + 14 + 40 + 32
