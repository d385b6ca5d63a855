"""CPU and I/O device modules of a distributed operating-system simulator."""

__version__ = "0.1.0"