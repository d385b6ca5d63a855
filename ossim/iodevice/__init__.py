"""Simulated I/O device that waits on request and reports back to the kernel."""