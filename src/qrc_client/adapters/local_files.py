import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalFileSource:
    def __init__(self, base_dir: str | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else None

    def _resolve(self, path: str) -> Path:
        resolved = Path(path).expanduser()
        if self._base_dir and not resolved.is_absolute():
            resolved = self._base_dir / resolved
        return resolved

    def read_text(self, path: str) -> str:
        resolved = self._resolve(path)
        logger.debug("Reading payload from %s", resolved)
        return resolved.read_text(encoding="utf-8")


class LocalFileSink(LocalFileSource):
    def write_text(self, path: str, data: str) -> None:
        resolved = self._resolve(path)
        resolved.parent.mkdir(parents=True, exist_ok=True)
        resolved.write_text(data, encoding="utf-8")
        logger.info("Wrote %d bytes to %s", len(data), resolved)
