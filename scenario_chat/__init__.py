"""Multi-character roleplay chat backed by a per-scenario vector store."""

__version__ = "0.1.0"
