"""
Key/value stores used for persistence (cache, exceptions, usage counters)
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


CACHE_KEY = "neutralizer_cache_v1"
LONG_TEXT_EXCEPTIONS_KEY = "neutralizer_long_exceptions_v1"
API_USAGE_KEY = "neutralizer_api_tokens_v1"
PRICING_KEY = "neutralizer_pricing_v1"


class MemoryStore:
    """In-process store; values are kept as strings"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str, default: str = "") -> str:
        return self.data.get(key, default)

    async def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True


class JsonFileStore(MemoryStore):
    """Store persisted as one JSON object on disk"""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        super().__init__(self._read())

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.info("store file unreadable, starting empty: %s", self.path)
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    async def set(self, key: str, value: str) -> bool:
        await super().set(key, value)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(self.data, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.debug("store write failed: %s", exc)
            return False
        return True
