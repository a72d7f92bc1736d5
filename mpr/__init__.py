"""Multi-platform release orchestrator."""

__version__ = "0.1.0"
