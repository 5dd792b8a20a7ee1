"""
Display masking for secret values.

A mask is a display transform only. It is not a substitute for encryption;
confidentiality at rest is handled by the storage layer.
"""

from typing import List, Optional

from . import config


def mask(secret: str) -> str:
    """
    Derive the fixed-shape display form of a secret.

    Secrets of at least MASK_MIN_SECRET_LENGTH characters keep their first
    and last few characters around a fixed placeholder, e.g.
    "sk-ABCDEFGH1234" -> "sk-A...1234". Shorter secrets are hidden entirely.
    The result never contains a secret longer than the shown prefix.
    """
    if len(secret) >= config.MASK_MIN_SECRET_LENGTH:
        suffix = secret[-config.MASK_SUFFIX_LENGTH:] if config.MASK_SUFFIX_LENGTH else ""
        return f"{secret[:config.MASK_PREFIX_LENGTH]}{config.MASK_PLACEHOLDER}{suffix}"
    if secret in config.MASK_HIDDEN_TEXT:
        return config.MASK_HIDDEN_TEXT_ALT
    return config.MASK_HIDDEN_TEXT


def looks_like_secret(value) -> bool:
    """Advisory check that `value` is a non-blank string."""
    return isinstance(value, str) and bool(value.strip())


def split_tags(tags: Optional[str]) -> List[str]:
    """Split a comma-separated tag string into trimmed, non-empty labels."""
    if not tags:
        return []
    return [label.strip() for label in tags.split(",") if label.strip()]


def normalize_tags(tags: Optional[str]) -> Optional[str]:
    """Canonical stored form of a tag string, or None when no label remains."""
    labels = split_tags(tags)
    return ", ".join(labels) if labels else None
