"""
ID generation utilities.

Provides consistent ID generation for all entity types:
- Signals: sig_xxx
- Documents: doc_xxx
- Chunks: doc_xxx_chunk_N
- Commits: cmt_xxx
- Document versions: ver_xxx
- Canons: canon_xxx
- Digests: dgst_xxx
"""

from uuid import uuid4


def _short_hex() -> str:
    return uuid4().hex[:12]


def generate_signal_id() -> str:
    """
    Generate unique Signal ID.

    Returns:
        ID in format "sig_xxx" where xxx is 12 hex characters
    """
    return f"sig_{_short_hex()}"


def generate_document_id() -> str:
    """
    Generate unique Document ID.

    Returns:
        ID in format "doc_xxx" where xxx is 12 hex characters
    """
    return f"doc_{_short_hex()}"


def generate_chunk_id(document_id: str, chunk_index: int) -> str:
    """
    Generate Chunk ID based on parent document.

    Args:
        document_id: Parent document ID
        chunk_index: Zero-based chunk index

    Returns:
        ID in format "doc_xxx_chunk_N"
    """
    return f"{document_id}_chunk_{chunk_index}"


def generate_commit_id() -> str:
    """
    Generate unique Commit ID.

    Returns:
        ID in format "cmt_xxx" where xxx is 12 hex characters
    """
    return f"cmt_{_short_hex()}"


def generate_version_id() -> str:
    """Generate unique DocumentVersion ID ("ver_xxx")."""
    return f"ver_{_short_hex()}"


def generate_canon_id() -> str:
    """Generate unique Canon ID ("canon_xxx")."""
    return f"canon_{_short_hex()}"


def generate_digest_id() -> str:
    """Generate unique Digest ID ("dgst_xxx")."""
    return f"dgst_{_short_hex()}"
