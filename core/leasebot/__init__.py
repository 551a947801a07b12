"""Leasebot: tenant-leasing chat bridge between an LLM and an MCP tool server."""

__version__ = "0.1.0"
