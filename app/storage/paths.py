"""
Storage key generation.
Keys look like "invoices/3f1c...e9.pdf": folder, random UUID, original extension.
"""

import uuid
from pathlib import Path, PurePosixPath


def object_key(folder: str, file_name: str) -> str:
    """New unique key under folder, keeping the upload's extension (lower-cased)."""
    suffix = PurePosixPath(file_name or "").suffix.lower()
    if not suffix[1:].isalnum():
        suffix = ""
    return f"{folder.strip('/')}/{uuid.uuid4().hex}{suffix}"


def safe_local_path(root: Path, key: str) -> Path:
    """Resolve key under root, refusing anything that escapes it."""
    full_path = (root / key).resolve()
    if root.resolve() not in full_path.parents:
        raise ValueError(f"Storage key escapes root: {key}")
    return full_path


def ensure_parent_dirs(root: Path, key: str) -> Path:
    """Create parent directories for a key and return the full path."""
    full_path = safe_local_path(root, key)
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
