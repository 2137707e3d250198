"""Local storage for manual payment proofs."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol
from uuid import uuid4


@dataclass(frozen=True)
class ProofFile:
    """An uploaded proof document held in memory."""

    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        suffix = PurePosixPath(self.filename or "").suffix
        return suffix.lstrip(".").lower()


class ProofStorage(Protocol):
    """Anything able to persist a proof file and return its storage key."""

    def save(self, proof: ProofFile, directory: str) -> str:
        ...


class LocalProofStorage:
    """Store proofs under a root directory on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _resolve(self, key: str) -> Path:
        normalized = key.strip().replace("\\", "/").lstrip("/")
        if ".." in normalized.split("/"):
            raise ValueError("Invalid storage key")
        root = self.root.resolve()
        path = (root / normalized).resolve()
        if root not in path.parents:
            raise ValueError("Invalid storage path")
        return path

    def save(self, proof: ProofFile, directory: str) -> str:
        """Write ``proof`` below ``directory`` and return the relative key."""

        name = f"{uuid4().hex}.{proof.extension}" if proof.extension else uuid4().hex
        key = f"{directory.strip('/')}/{name}"
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(proof.content)
        return key

    def path_for(self, key: str) -> Path:
        return self._resolve(key)


__all__ = ["ProofFile", "ProofStorage", "LocalProofStorage"]
