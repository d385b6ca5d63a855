"""Simulated CPU: instruction cycle, interrupts, MMU with TLB and page cache, HTTP server."""