"""
Content integrity hashing.

Provides the single helper used to stamp snapshots and transformation
results with a verifiable digest of the content they carry.

IMPORTANT DESIGN RULE:
- The digest covers the flattened content string only.
- Timestamps and metadata are never hashed, so identical content always
  yields an identical digest.
"""

import hashlib

ERROR_HASH = "error_hash"


def compute_content_hash(content: str) -> str:
    """
    Compute a deterministic, human-readable content integrity hash.

    Args:
        content:
            Flattened document content. Encoded as UTF-8 before hashing.

    Returns:
        A SHA-256 hash string with an explicit algorithm prefix.
        Example: ``SHA-256:3b7c0e4c...``
    """
    if not isinstance(content, str):
        raise TypeError(
            "compute_content_hash expects str content, "
            f"got {type(content).__name__}"
        )

    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"SHA-256:{digest}"
