"""Leaseweb bare-metal API client.

Typed Python bindings for the Leaseweb bare-metal REST API: servers, IPs,
DHCP leases, power, network interfaces, notification settings,
credentials, operating system installation and jobs.
"""

__version__ = "0.1.0"
