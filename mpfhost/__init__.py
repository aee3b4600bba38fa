"""Host runtime for a modular plugin framework: core services and plugin lifecycle."""

__version__ = "1.0.0"