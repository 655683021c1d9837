import re
from collections import namedtuple
from ipaddress import ip_address, ip_network

from scanner import ScanError

MAX_PORT = 65535
DEFAULT_PORT_RANGE = (1, 1024)

_HOSTNAME = re.compile(r"^(?=.{1,253}$)[A-Za-z0-9_](?:[A-Za-z0-9_.-]*[A-Za-z0-9_])?$")


class InvalidTargetError(ScanError, ValueError):
    pass


class InvalidPortRangeError(ScanError, ValueError):
    pass


Target = namedtuple("Target", ["kind", "value", "network"])


class PortRange(namedtuple("PortRange", ["start", "end"])):
    __slots__ = ()

    @property
    def size(self):
        return self.end - self.start + 1

    def __str__(self):
        return f"{self.start}-{self.end}"


def parse_target(text):
    """Classify operator input as a CIDR block, a bare IP, or a domain."""
    text = (text or "").strip()
    if not text:
        raise InvalidTargetError("empty target")

    if "/" in text:
        try:
            network = ip_network(text, strict=False)
        except ValueError as e:
            raise InvalidTargetError(f"invalid network: {text} ({e})")
        return Target("cidr", str(network), network)

    try:
        return Target("ip", str(ip_address(text)), None)
    except ValueError:
        pass

    if not _HOSTNAME.match(text):
        raise InvalidTargetError(f"invalid host or domain: {text}")
    return Target("domain", text, None)


def parse_port_range(text, default=DEFAULT_PORT_RANGE):
    text = (text or "").strip()
    if not text:
        return PortRange(*default)

    parts = text.split("-")
    if len(parts) > 2:
        raise InvalidPortRangeError(f"invalid port range: {text}")
    try:
        start = int(parts[0])
        end = int(parts[1]) if len(parts) == 2 else start
    except ValueError:
        raise InvalidPortRangeError(f"invalid port range: {text}")

    if start < 1 or end > MAX_PORT or start > end:
        raise InvalidPortRangeError(f"invalid port range: {text}")
    return PortRange(start, end)
