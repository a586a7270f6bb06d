from __future__ import annotations

import uuid


def generate_id() -> str:
    """Opaque primary key for every persisted document."""
    return str(uuid.uuid4())
