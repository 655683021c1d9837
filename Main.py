import argparse
import logging
import os
import sys

from colorama import Fore, Style, init
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from scanner import HostDiscovery, NoHostSelectedError, PortScanner, ScanConfig, select_host
from services import is_private_ip, service_name
from targets import InvalidPortRangeError, InvalidTargetError, parse_port_range, parse_target


def info(message):
    tqdm.write(f"{Fore.CYAN}[*]{Style.RESET_ALL} {message}")


def found(message):
    tqdm.write(f"{Fore.GREEN}[+]{Style.RESET_ALL} {message}")


def error(message):
    tqdm.write(f"{Fore.RED}[!] {message}{Style.RESET_ALL}")


def build_parser():
    parser = argparse.ArgumentParser(description="Network Sweep and Port Scanner")
    parser.add_argument("target", nargs="?",
                        help="CIDR block, host or domain (e.g., 192.168.0.0/24 or example.com)")
    parser.add_argument("--ports", "-p", help="Port range (e.g., 20-80 or a single port), default 1-1024")
    parser.add_argument("--threads", "-t", type=int, default=50,
                        help="Maximum concurrent liveness probes")
    parser.add_argument("--timeout", type=float, default=1.0, help="TCP connect timeout in seconds")
    parser.add_argument("--ping-timeout", type=float, default=5.0,
                        help="Deadline for each liveness probe in seconds")
    parser.add_argument("--port-cap", type=int, default=None,
                        help="Maximum concurrent port probes (unlimited by default)")
    parser.add_argument("--select", "-s", type=int, help="Pick the Nth discovered host without prompting")
    parser.add_argument("--sort", action="store_true", help="Print a sorted summary of open ports")
    parser.add_argument("--no-pause", action="store_true", help="Do not wait for Enter before exiting")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    return parser


def check_privileges():
    geteuid = getattr(os, "geteuid", None)
    if geteuid is not None and geteuid() != 0:
        error("This program requires administrator privileges to run.")


def choose_host(hosts, preselected=None):
    print("\n=====================================")
    for i, host in enumerate(hosts, 1):
        print(f"{Fore.CYAN}({i}){Style.RESET_ALL} {host}")
    print("=====================================\n")

    if not hosts:
        raise NoHostSelectedError("no live hosts found")
    if preselected is not None:
        return select_host(hosts, preselected)
    try:
        choice = input(f"{Fore.BLUE}Select number> {Style.RESET_ALL}")
    except EOFError:
        choice = None
    return select_host(hosts, choice)


def sweep(target, config, args):
    info(f"Scanning for hosts in the network: {target.network}")
    with logging_redirect_tqdm():
        progress = None if args.verbose else tqdm(total=target.network.num_addresses, desc="Sweep Progress")
        try:
            hosts = HostDiscovery(config=config).discover(
                target.network,
                progress=progress,
                on_alive=lambda ip: found(f"Host Discovered: {ip}"),
            )
        finally:
            if progress:
                progress.close()
    return choose_host(hosts, args.select)


def scan_ports(host, port_range, config, args):
    info(f"Scanning host/domain: {host} for open ports in range {port_range}...")
    open_ports = []
    with logging_redirect_tqdm():
        progress = None if args.verbose else tqdm(total=port_range.size, desc="Port Scan Progress")
        try:
            for port in PortScanner(config=config).scan(host, port_range, progress=progress):
                open_ports.append(port)
                found(f"Open port found: {port}\t({service_name(port)})")
        finally:
            if progress:
                progress.close()

    if not open_ports:
        info("No open ports found")
    elif args.sort:
        print("\n===== Scan Results =====")
        for port in sorted(open_ports):
            print(f"  - {host}: Port {port} ({service_name(port)}) is OPEN")
    return open_ports


def run(args):
    try:
        config = ScanConfig(
            concurrency_cap=args.threads,
            ping_timeout=args.ping_timeout,
            probe_timeout=args.timeout,
            port_concurrency_cap=args.port_cap,
        )
    except ValueError as e:
        error(str(e))
        return 2

    check_privileges()

    target_text = args.target
    if target_text is None:
        target_text = input("Enter CIDR notation, host, or domain (e.g., 192.168.0.0/24 or example.com): ")
    port_text = args.ports
    if port_text is None and args.target is None:
        port_text = input("Enter port range (e.g., 20-80 or single port): ")

    try:
        target = parse_target(target_text)
        port_range = parse_port_range(port_text, default=config.default_port_range)
    except (InvalidTargetError, InvalidPortRangeError) as e:
        error(f"Error: {e}")
        return 2

    info("Starting...")
    if target.kind == "cidr":
        try:
            chosen = sweep(target, config, args)
        except NoHostSelectedError as e:
            error(f"Error: {e}")
            error("Exiting...")
            return 1
    else:
        info(f"Skipping host discovery and proceeding to port scanning for {target.kind}: {target.value}")
        chosen = target.value

    if target.kind != "domain":
        visibility = "private" if is_private_ip(chosen) else "public"
        info(f"The IP address {chosen} is {visibility}.")

    try:
        scan_ports(chosen, port_range, config, args)
    except (RuntimeError, OSError) as e:
        error(f"Error: port scan could not start every probe: {e}")
        return 1
    info("Scan completed")
    return 0


def main(argv=None):
    init(autoreset=True)
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    code = run(args)

    if not args.no_pause and sys.stdin.isatty():
        input(f"{Fore.YELLOW}Press Enter to exit...{Style.RESET_ALL}")
    return code


if __name__ == "__main__":
    sys.exit(main())
