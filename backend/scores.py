"""
JSON-file score tables: one global list and one list per day.

Both keep at most ``MAX_ENTRIES`` entries sorted by score, highest first.
A rejected submission never touches the file.
"""

import json
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

MAX_ENTRIES = 100
MAX_NAME_LENGTH = 16
DATE_PATTERN = re.compile(r"^\d{8}$")


def _parse_score(value: Any) -> int:
    """Lenient integer parse: anything unusable counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = re.match(r"^\s*[+-]?\d+", value)
        return int(match.group()) if match else 0
    return 0


def _entry(name: Any, score: int, diff: Any) -> dict:
    name = str(name).strip() if name is not None else "Player"
    return {
        "name": name[:MAX_NAME_LENGTH],
        "score": score,
        "difficulty": str(diff) if diff is not None else "normal",
        "ts": int(time.time()),
    }


def _ranked(entries: list[dict]) -> list[dict]:
    return sorted(entries, key=lambda e: e["score"], reverse=True)[:MAX_ENTRIES]


class _JsonFile:
    def __init__(self, path):
        self.path = Path(path)

    def read(self, default):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return default
        except json.JSONDecodeError:
            logger.error("score file %s is corrupt, treating it as empty", self.path)
            return default
        return data if isinstance(data, type(default)) else default

    def write(self, data) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=4, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise


class ScoreStore:
    """Global high-score list."""

    def __init__(self, path):
        self.file = _JsonFile(path)

    def load(self) -> list[dict]:
        return self.file.read([])

    def submit(self, name: Any = "Player", score: Any = 0, diff: Any = "normal") -> dict:
        points = _parse_score(score)
        if points <= 0:
            return {"ok": False, "error": "Missing score"}

        entries = self.load()
        entries.append(_entry(name, points, diff))
        self.file.write(_ranked(entries))
        return {"ok": True}


class DailyScoreStore:
    """High-score lists keyed by yyyymmdd date."""

    def __init__(self, path):
        self.file = _JsonFile(path)

    def load(self, date: Optional[str]) -> list[dict]:
        if not date:
            return []
        entries = self.file.read({}).get(date)
        return entries if isinstance(entries, list) else []

    def submit(self, name: Any = "Player", score: Any = 0, diff: Any = "normal", date: Optional[str] = None) -> dict:
        points = _parse_score(score)
        if points <= 0 or not date:
            return {"ok": False, "error": "Missing score or date"}
        date = str(date)
        if not DATE_PATTERN.match(date):
            return {"ok": False, "error": "Invalid date"}

        data = self.file.read({})
        entries = data.get(date)
        if not isinstance(entries, list):
            entries = []
        entries.append(_entry(name, points, diff))
        data[date] = _ranked(entries)
        self.file.write(data)
        return {"ok": True}
