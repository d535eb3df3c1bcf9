"""Bidirectional sync between the local scripts folder and the remote repository.

This package provides the primitives for:
- Version ordering and bumping of MAJOR.MINOR.PATCH labels
- Content hashing for drift detection between replicas
- Reconciliation: classifying every script as new, update, conflict, or skip
- Pull and push drivers that act on a reconciliation
"""
