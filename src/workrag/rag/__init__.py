"""Retrieval-augmented generation over an organization's work items.

Modules are imported directly (``from workrag.rag.service import Service``);
this package keeps no imports of its own so that the storage layer can use
the chunking and visibility helpers without import cycles.
"""
