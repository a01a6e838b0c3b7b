"""Indexer CLI commands package.

- reindex: queue resources on the re-index stream
- classify: dry-run routing decision for a resource
"""
