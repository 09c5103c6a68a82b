"""Store configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

DEFAULT_DATABASE_NAME = "scores"


@dataclass
class StoreConfig:
    """Where the score database lives and how it is initialized."""

    path: Path | str = f"{DEFAULT_DATABASE_NAME}.sqlite3"
    # Insert the fixture games when the store is empty
    seed: bool = True

    @classmethod
    def in_directory(cls, directory: Path | str, *, seed: bool = True) -> "StoreConfig":
        return cls(path=Path(directory) / f"{DEFAULT_DATABASE_NAME}.sqlite3", seed=seed)

    @property
    def database(self) -> str:
        """Path handed to the SQLite driver."""
        return str(self.path)

    def to_dict(self) -> Dict[str, Any]:
        return {"path": str(self.path), "seed": self.seed}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StoreConfig":
        return cls(
            path=d.get("path", f"{DEFAULT_DATABASE_NAME}.sqlite3"),
            seed=bool(d.get("seed", True)),
        )
