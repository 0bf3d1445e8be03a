"""WorkRAG: role-aware retrieval-augmented answers over an organization's work data."""

__version__ = "0.1.0"
