"""Minecraft and TLS relay proxy building blocks: packets, handshake handling, SNI sniffing, access lists and traffic quotas."""

__version__ = "0.1.0"