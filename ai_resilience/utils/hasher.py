"""
Cache key generation utilities.

Sandi Metz Principles:
- Single Responsibility: Hash generation
- Small functions: Each does one thing
- Pure functions: No side effects
"""

import hashlib


def normalize_message(message: str) -> str:
    """
    Normalize message for comparison.

    Args:
        message: Message text

    Returns:
        Normalized message (case-folded, trimmed)
    """
    return message.strip().casefold()


def hash_message(message: str) -> str:
    """
    Hash the normalized form of a message.

    Args:
        message: Raw message text

    Returns:
        SHA-256 hex digest of the normalized message
    """
    normalized = normalize_message(message)
    return hashlib.sha256(normalized.encode()).hexdigest()


def generate_entry_id(partner_id: str, message_hash: str) -> str:
    """
    Generate cache entry id for a partner/message pair.

    Args:
        partner_id: Conversation partner identifier
        message_hash: Hash of the normalized message

    Returns:
        Entry id (partner_id:hash)
    """
    return f"{partner_id}:{message_hash}"
