import contextlib

import pytest

import Main
import scanner


@pytest.fixture
def fake_network(monkeypatch):
    alive = {"10.0.0.1", "10.0.0.2"}
    open_ports = {22, 80}

    monkeypatch.setattr(scanner.PingProber, "probe",
                        lambda self, address, deadline: address in alive)
    monkeypatch.setattr(scanner.TcpConnectProber, "probe",
                        lambda self, host, port, timeout: port in open_ports)


def run_cli(argv):
    return Main.run(Main.build_parser().parse_args(argv))


def test_cidr_sweep_then_port_scan(fake_network, capsys):
    code = run_cli(["10.0.0.0/30", "-p", "20-23", "--select", "1", "--sort"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Host Discovered: 10.0.0.1" in out
    assert "Host Discovered: 10.0.0.2" in out
    assert "is private." in out
    assert "Open port found: 22\t(SSH)" in out
    assert "Open port found: 80" not in out
    assert "Port 22 (SSH) is OPEN" in out


def test_invalid_selection_exits_with_error(fake_network, capsys):
    code = run_cli(["10.0.0.0/30", "-p", "22", "--select", "9"])
    assert code == 1
    assert "invalid choice" in capsys.readouterr().out


def test_no_live_hosts_is_terminal(monkeypatch, capsys):
    monkeypatch.setattr(scanner.PingProber, "probe", lambda self, address, deadline: False)
    code = run_cli(["10.9.0.0/30", "-p", "22", "--select", "1"])
    assert code == 1
    assert "no live hosts found" in capsys.readouterr().out


def test_interactive_selection(fake_network, monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt="": "2")
    assert run_cli(["10.0.0.0/30", "-p", "80"]) == 0
    assert "Open port found: 80\t(HTTP)" in capsys.readouterr().out


def test_domain_skips_discovery(fake_network, capsys):
    code = run_cli(["scanme.example.com", "-p", "79-81"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Skipping host discovery" in out
    assert "is public" not in out and "is private" not in out
    assert "Open port found: 80\t(HTTP)" in out


def test_public_ip_without_open_ports(fake_network, capsys):
    code = run_cli(["198.51.100.5", "-p", "443"])
    out = capsys.readouterr().out
    assert code == 0
    assert "The IP address 198.51.100.5 is public." in out
    assert "No open ports found" in out


@pytest.mark.parametrize("argv", [["10.0.0.0/30", "-p", "30-20"], ["bad host name", "-p", "22"]])
def test_input_errors(argv, capsys):
    assert run_cli(argv) == 2
    assert "Error" in capsys.readouterr().out


def test_prompts_for_missing_target(fake_network, monkeypatch, capsys):
    answers = iter(["198.51.100.5", "22"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    assert run_cli([]) == 0
    assert "Open port found: 22" in capsys.readouterr().out


def test_bad_thread_count(capsys):
    assert run_cli(["10.0.0.0/30", "-t", "0"]) == 2


def test_logging_is_routed_through_progress_bars(fake_network, monkeypatch):
    entered = []

    @contextlib.contextmanager
    def record_redirect():
        entered.append(True)
        yield

    monkeypatch.setattr(Main, "logging_redirect_tqdm", record_redirect)
    assert run_cli(["10.0.0.0/30", "-p", "22", "--select", "1"]) == 0
    assert len(entered) == 2


def test_verbose_reports_each_host_once(fake_network, caplog, capsys):
    with caplog.at_level("DEBUG"):
        assert run_cli(["10.0.0.0/30", "-p", "22", "--select", "1", "-v"]) == 0
    out = capsys.readouterr().out
    assert out.count("Host Discovered: 10.0.0.1") == 1
    assert "10.0.0.1" not in caplog.text


def test_failed_port_sweep_exits_with_error(fake_network, monkeypatch, capsys):
    def broken_scan(self, host, port_range, timeout=None, progress=None):
        yield 22
        raise RuntimeError("can't start new thread")

    monkeypatch.setattr(scanner.PortScanner, "scan", broken_scan)
    assert run_cli(["198.51.100.5", "-p", "20-30"]) == 1
    out = capsys.readouterr().out
    assert "Open port found: 22" in out
    assert "could not start every probe" in out
