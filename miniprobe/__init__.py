"""miniprobe - session sample store for host monitoring probes."""
from miniprobe.version import VERSION

__version__ = VERSION
