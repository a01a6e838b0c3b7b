"""Indexer application shells.

This package contains thin I/O layers for different interfaces:
- cli: Typer CLI
- worker: Redis Streams consumer running the indexing pipeline
"""
