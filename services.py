from ipaddress import ip_address, ip_network

COMMON_SERVICES = {
    20: "FTP Data",
    21: "FTP",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    67: "DHCP Server",
    68: "DHCP Client",
    69: "TFTP",
    80: "HTTP",
    110: "POP3",
    111: "RPCbind",
    119: "NNTP",
    123: "NTP",
    135: "MS RPC",
    137: "NetBIOS Name",
    138: "NetBIOS Datagram",
    139: "NetBIOS Session",
    143: "IMAP",
    161: "SNMP",
    162: "SNMP Trap",
    179: "BGP",
    389: "LDAP",
    443: "HTTPS",
    445: "Microsoft-DS",
    465: "SMTPS",
    514: "Syslog",
    515: "LPD",
    520: "RIP",
    587: "SMTP Submission",
    631: "IPP",
    636: "LDAPS",
    993: "IMAPS",
    995: "POP3S",
    1080: "SOCKS Proxy",
    1433: "MSSQL",
    1521: "Oracle DB",
    1723: "PPTP",
    2049: "NFS",
    2082: "cPanel",
    2083: "cPanel SSL",
    2181: "Zookeeper",
    2375: "Docker",
    2376: "Docker SSL",
    3306: "MySQL",
    3389: "RDP",
    3690: "Subversion",
    4000: "ICQ",
    4040: "HTTP Proxy",
    4369: "Erlang Port Mapper",
    5000: "UPnP",
    5432: "PostgreSQL",
    5631: "pcAnywhere",
    5900: "VNC",
    5984: "CouchDB",
    6379: "Redis",
    6667: "IRC",
    7001: "WebLogic",
    8000: "HTTP Alt",
    8008: "HTTP Alt",
    8080: "HTTP Proxy",
    8081: "HTTP Alt",
    8443: "HTTPS Alt",
    8888: "HTTP Alt",
    9000: "SonarQube",
    9200: "Elasticsearch",
    9300: "Elasticsearch",
    11211: "Memcached",
    27017: "MongoDB",
    27018: "MongoDB",
    27019: "MongoDB",
    50000: "SAP",
}

PRIVATE_NETWORKS = [
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
    ip_network("127.0.0.0/8"),  # loopback
    ip_network("169.254.0.0/16"),  # link-local
]


def service_name(port):
    return COMMON_SERVICES.get(port, "Unknown")


def is_private_ip(ip):
    try:
        address = ip_address(ip)
    except ValueError:
        return False
    return any(address in network for network in PRIVATE_NETWORKS
               if network.version == address.version)
