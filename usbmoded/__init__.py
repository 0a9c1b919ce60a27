"""USB gadget mode management: settings, mode lists, gadget backends and helpers."""

__version__ = "0.1.0"