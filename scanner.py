import logging
import platform
import queue
import shutil
import socket
import subprocess
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Port sweeps wider than this are flagged when no port cap is configured.
UNCAPPED_PORT_WARNING = 1024

_DONE = object()


class ScanError(Exception):
    pass


class NoHostSelectedError(ScanError):
    pass


@dataclass
class ScanConfig:
    concurrency_cap: int = 50
    ping_timeout: float = 5.0
    probe_timeout: float = 1.0
    default_port_range: tuple = (1, 1024)
    port_concurrency_cap: int = None

    def __post_init__(self):
        if self.concurrency_cap < 1:
            raise ValueError("concurrency_cap must be at least 1")
        if self.port_concurrency_cap is not None and self.port_concurrency_cap < 1:
            raise ValueError("port_concurrency_cap must be at least 1")
        if self.ping_timeout <= 0 or self.probe_timeout <= 0:
            raise ValueError("timeouts must be positive")


class AddressIterator:
    """Every address of a network block, ascending from the masked base.

    Network and broadcast addresses are included. Each call to ``iter()``
    starts over from the base address.
    """

    def __init__(self, network):
        self.network = network

    def __len__(self):
        return self.network.num_addresses

    def __iter__(self):
        address_type = type(self.network.network_address)
        current = int(self.network.network_address)
        last = int(self.network.broadcast_address)
        # Bounded by integer value so the top of the address space cannot wrap.
        while current <= last:
            yield address_type(current)
            current += 1


def ping_command():
    ping_path = shutil.which("ping")
    if not ping_path:
        return None
    system_name = platform.system().lower()
    if system_name == "windows":
        return [ping_path, "-n", "1", "-w", "1000"]
    if system_name == "darwin":
        return [ping_path, "-n", "-c", "1", "-W", "1000"]
    return [ping_path, "-n", "-c", "1", "-W", "1"]


class PingProber:
    """Liveness check backed by the system ``ping`` binary."""

    def __init__(self, command=None):
        self.command = command if command is not None else ping_command()
        if self.command is None:
            logger.warning("ping binary not found, every host will be reported down")

    def probe(self, address, deadline):
        if not self.command:
            return False
        try:
            result = subprocess.run(
                self.command + [str(address)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=deadline,
            )
        except subprocess.TimeoutExpired:
            logger.debug("[DOWN] %s (timeout after %ss)", address, deadline)
            return False
        except OSError as e:
            logger.debug("[DOWN] %s (%s)", address, e)
            return False
        if result.returncode != 0:
            logger.debug("[DOWN] %s (exit code %d)", address, result.returncode)
            return False
        return True


class TcpConnectProber:
    """Full-handshake connect probe; the connection is dropped at once."""

    def probe(self, host, port, timeout):
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except socket.timeout:
            logger.debug("[FILTERED] %s:%d (timeout)", host, port)
        except ConnectionRefusedError:
            logger.debug("[CLOSED] %s:%d (refused)", host, port)
        except socket.gaierror as e:
            logger.debug("[UNRESOLVED] %s:%d (%s)", host, port, e)
        except OSError as e:
            logger.debug("[FILTERED] %s:%d (%s)", host, port, e)
        return False


class HostDiscovery:
    """Runs the liveness prober over a network block.

    At most ``config.concurrency_cap`` probes are in flight. Alive hosts are
    returned in the order their probes completed, which varies between runs.
    """

    def __init__(self, prober=None, config=None):
        self.prober = prober if prober is not None else PingProber()
        self.config = config if config is not None else ScanConfig()

    def discover(self, network, progress=None, on_alive=None):
        admission = threading.BoundedSemaphore(self.config.concurrency_cap)
        lock = threading.Lock()
        live_hosts = []

        def ping_host(ip):
            try:
                try:
                    alive = self.prober.probe(ip, self.config.ping_timeout)
                except Exception:
                    logger.exception("Liveness probe for %s failed", ip)
                    alive = False
                if alive:
                    with lock:
                        live_hosts.append(ip)
                        if on_alive:
                            on_alive(ip)
                if progress:
                    progress.update(1)
            finally:
                admission.release()

        try:
            for address in AddressIterator(network):
                admission.acquire()
                thread = threading.Thread(target=ping_host, args=(str(address),), daemon=True)
                try:
                    thread.start()
                except BaseException:
                    admission.release()
                    raise
        finally:
            # Holding every slot means no probe is still in flight.
            for _ in range(self.config.concurrency_cap):
                admission.acquire()

        return live_hosts


class PortScanner:
    """Connect-scans a port range on one host.

    Every port gets its own thread unless ``config.port_concurrency_cap`` is
    set. Open ports are yielded as their probes finish, not in numeric order.
    """

    def __init__(self, prober=None, config=None):
        self.prober = prober if prober is not None else TcpConnectProber()
        self.config = config if config is not None else ScanConfig()

    def scan(self, host, port_range, timeout=None, progress=None):
        start, end = port_range
        if timeout is None:
            timeout = self.config.probe_timeout
        cap = self.config.port_concurrency_cap
        if cap is None and end - start + 1 > UNCAPPED_PORT_WARNING:
            logger.warning("Probing %d ports on %s with no concurrency cap",
                           end - start + 1, host)

        admission = threading.BoundedSemaphore(cap) if cap else None
        results = queue.Queue()

        def scan_port(port):
            try:
                try:
                    is_open = self.prober.probe(host, port, timeout)
                except Exception:
                    logger.exception("Port probe for %s:%d failed", host, port)
                    is_open = False
                if is_open:
                    results.put(port)
                if progress:
                    progress.update(1)
            finally:
                if admission:
                    admission.release()

        def launch():
            threads = []
            outcome = _DONE
            try:
                for port in range(start, end + 1):
                    if admission:
                        admission.acquire()
                    thread = threading.Thread(target=scan_port, args=(port,), daemon=True)
                    try:
                        thread.start()
                    except BaseException:
                        if admission:
                            admission.release()
                        raise
                    threads.append(thread)
            except BaseException as e:
                logger.error("Port sweep on %s stopped after %d probes: %s", host, len(threads), e)
                outcome = e
            finally:
                # The stream closes only once every started probe has reported.
                for thread in threads:
                    thread.join()
                results.put(outcome)

        threading.Thread(target=launch, daemon=True).start()

        while True:
            item = results.get()
            if item is _DONE:
                return
            if isinstance(item, BaseException):
                raise item
            yield item


def select_host(hosts, choice):
    """Pick a host by its 1-based position in the discovery list."""
    if not hosts:
        raise NoHostSelectedError("no live hosts to select from")
    try:
        index = int(choice)
    except (TypeError, ValueError):
        raise NoHostSelectedError(f"invalid choice: {choice!r}")
    if index < 1 or index > len(hosts):
        raise NoHostSelectedError(f"invalid choice: {index}")
    return hosts[index - 1]
