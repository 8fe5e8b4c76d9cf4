"""Sandboxed, in-process environment for agent-based simulations of smart contracts."""

__version__ = "0.1.0"