"""Host resource collector used by the probe side of miniprobe.

Reads static host metadata and per-tick CPU, memory and network readings
with psutil and shapes them into the schemas the store accepts.
"""
import logging
import platform
import socket
import time
from typing import Iterable, List, Optional

import psutil

from miniprobe.schemas.sample import (
    CpuReading,
    HostMetadata,
    MemoryReading,
    NetworkReading,
    SampleCreate,
)

logger = logging.getLogger(__name__)


def collect_host_metadata() -> HostMetadata:
    """Describe the current host."""
    return HostMetadata(
        system_name=platform.system() or None,
        kernel_version=platform.release() or None,
        os_version=platform.version() or None,
        host_name=socket.gethostname() or None,
        cpu_arch=platform.machine() or None,
    )


class HostCollector:
    """Collects one sample per call to collect()."""

    def __init__(self, interfaces: Optional[Iterable[str]] = None):
        """
        Initialize collector.

        Args:
            interfaces: Network interfaces to report. Defaults to every
                interface except loopback.

        Raises:
            ValueError: If a requested interface does not exist
        """
        available = psutil.net_io_counters(pernic=True)

        if interfaces is None:
            self.interfaces = [name for name in available if not name.startswith("lo")]
        else:
            self.interfaces = list(interfaces)
            missing = [name for name in self.interfaces if name not in available]
            if missing:
                raise ValueError(f"Network interface not found: {', '.join(missing)}")

        logger.debug("Reporting network interfaces: %s", ", ".join(self.interfaces) or "none")

        # First call primes psutil's per-core counters; it always returns 0.0
        psutil.cpu_percent(percpu=True)

    def collect_cpu(self) -> List[CpuReading]:
        usages = psutil.cpu_percent(percpu=True)
        return [CpuReading(core=i, usage=usage / 100.0) for i, usage in enumerate(usages)]

    def collect_memory(self) -> MemoryReading:
        memory = psutil.virtual_memory()
        swap = psutil.swap_memory()
        return MemoryReading(
            total=memory.total,
            used=memory.used,
            swap_total=swap.total,
            swap_used=swap.used,
        )

    def collect_network(self) -> List[NetworkReading]:
        counters = psutil.net_io_counters(pernic=True)
        readings = []
        for name in self.interfaces:
            stats = counters.get(name)
            # Interfaces that vanished since startup still report, without counters
            readings.append(NetworkReading(
                ifname=name,
                rx_bytes=stats.bytes_recv if stats else None,
                tx_bytes=stats.bytes_sent if stats else None,
            ))
        return readings

    def collect(self, sample_time: Optional[int] = None) -> SampleCreate:
        """Take one sample of the host's resource usage."""
        if sample_time is None:
            sample_time = int(time.time())

        return SampleCreate(
            sample_time=sample_time,
            cpu=self.collect_cpu(),
            memory=self.collect_memory(),
            network=self.collect_network(),
        )
