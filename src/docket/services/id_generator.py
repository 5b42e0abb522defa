"""Prefixed ID generation utility."""

import uuid


def generate_id(prefix: str) -> str:
    """Return ``prefix`` followed by 16 random hex characters, e.g. ``todo_1f0c…``."""
    return f"{prefix}{uuid.uuid4().hex[:16]}"
