# cybershieldx/scanner/collectors/__init__.py
"""
Data collectors.
Each collector gathers raw facts from one source (the host, the network).
Collectors do NOT classify severity: they only gather facts.
"""
from cybershieldx.scanner.collectors.network_collector import NetworkCollector, NetworkRangeError
from cybershieldx.scanner.collectors.system_collector import SystemCollector

# Registry of all available collectors.
# The pipeline builds one of each per run.
ALL_COLLECTORS = {
    "system": SystemCollector,
    "network": NetworkCollector,
}

__all__ = [
    "SystemCollector", "NetworkCollector", "NetworkRangeError",
    "ALL_COLLECTORS",
]
