"""Reconnaissance building blocks: address ranges, QQwry lookup, service and web fingerprinting, directory discovery and Goby PoC checks."""

__version__ = "0.1.0"