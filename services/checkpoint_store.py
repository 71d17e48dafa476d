# services/checkpoint_store.py
import math
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path

from redis.exceptions import RedisError

from config.settings import settings
from core.exceptions import CheckpointError
from core.logger import logger


def format_timestamp(value: float) -> str:
    """Decimal text for a checkpoint: '200' for 200.0, at most six fractional digits otherwise."""
    if not math.isfinite(value):
        raise ValueError(f"Checkpoint must be finite, got {value!r}")
    return f"{value:.6f}".rstrip("0").rstrip(".")


def parse_timestamp(raw) -> float | None:
    """Returns the numeric checkpoint, or None when `raw` is absent or unusable."""
    if raw is None:
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


class CheckpointStore(ABC):
    """
    Persists the single "last processed" timestamp between runs.

    A missing or unparsable record is a normal first-run condition: `load()`
    writes and returns a default of now minus the lookback window. Backend
    I/O failures raise CheckpointError.
    """

    def __init__(self, lookback_days: int = None, clock=time.time):
        self.lookback_days = settings.CHECKPOINT_LOOKBACK_DAYS if lookback_days is None else lookback_days
        self.clock = clock

    @abstractmethod
    async def _read(self) -> str | None:
        ...

    @abstractmethod
    async def _write(self, text: str):
        ...

    def default_checkpoint(self) -> float:
        # Round-trip through the persisted format so a later load() returns the identical value
        return float(format_timestamp(self.clock() - self.lookback_days * settings.ONE_DAY))

    async def load(self) -> float:
        raw = await self._read()
        value = parse_timestamp(raw)
        if value is not None:
            logger.debug(f"Loaded checkpoint {value}")
            return value

        if raw is not None:
            logger.warning(f"Stored checkpoint {raw!r} is not a number, resetting")
        value = self.default_checkpoint()
        await self.save(value)
        logger.info(f"No usable checkpoint, starting {self.lookback_days} days back at {value}")
        return value

    async def save(self, timestamp: float):
        await self._write(format_timestamp(timestamp))
        logger.debug(f"Saved checkpoint {timestamp}")


class FileCheckpointStore(CheckpointStore):
    def __init__(self, path=None, **kwargs):
        super().__init__(**kwargs)
        self.path = Path(path or settings.CHECKPOINT_PATH)

    async def _read(self) -> str | None:
        try:
            return self.path.read_text(encoding="ascii")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            return ""
        except OSError as e:
            raise CheckpointError(f"Cannot read {self.path}: {e}") from e

    async def _write(self, text: str):
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="ascii")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise CheckpointError(f"Cannot write {self.path}: {e}") from e


class RedisCheckpointStore(CheckpointStore):
    def __init__(self, redis, key: str = None, **kwargs):
        super().__init__(**kwargs)
        self.redis = redis
        self.key = key or settings.CHECKPOINT_KEY

    async def _read(self) -> str | None:
        try:
            return await self.redis.get(self.key)
        except RedisError as e:
            raise CheckpointError(f"[REDIS GET ERROR] {self.key}: {e}") from e

    async def _write(self, text: str):
        try:
            await self.redis.set(self.key, text)
        except RedisError as e:
            raise CheckpointError(f"[REDIS SET ERROR] {self.key}: {e}") from e
