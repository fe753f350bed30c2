# =============================================================================
# AI Perfume Queue Client - Session Identity
# =============================================================================
# The server demultiplexes push events and binds uploads to jobs using a
# single per-submission token, so every submit() call draws a fresh one.
# =============================================================================

import uuid

_UUID_HEX_LENGTH = 32


def generate_session_token(length: int = 11) -> str:
    """
    Generate a new session token.

    Args:
        length: Number of hex characters to keep from a random UUID4,
                clamped to 1-32. Config rejects out-of-range settings at
                load time. The default 11 gives 44 random bits.

    Returns:
        str: A lowercase hex token, never reused across calls in practice.
    """
    length = min(max(length, 1), _UUID_HEX_LENGTH)
    return uuid.uuid4().hex[:length]
