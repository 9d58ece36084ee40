from pathlib import Path
from typing import Iterator, Sequence, overload

from pydantic import TypeAdapter, ValidationError

from vitalswatch.utils.logger import LoggerSetup
from .exceptions import ConfigurationError
from .models import ServerTarget

logger = LoggerSetup.setup(__name__)

_targets_adapter = TypeAdapter(list[ServerTarget])


class ServerRegistry(Sequence[ServerTarget]):
    """
    Read-only list of monitored servers, loaded once at startup.

    Duplicate names are kept as separate targets.
    """

    def __init__(self, targets: Sequence[ServerTarget]):
        self._targets: tuple[ServerTarget, ...] = tuple(targets)

    @classmethod
    def load(cls, source: str | Path) -> 'ServerRegistry':
        """
        Load targets from a JSON array of {"name", "url"} objects.

        Args:
            source: Path to the server list file

        Raises:
            ConfigurationError: If the file is unreadable or malformed
        """
        path = Path(source)
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ConfigurationError(f"Cannot read servers file {path}: {e}")

        try:
            targets = _targets_adapter.validate_json(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Malformed servers file {path}: {e}")

        registry = cls(targets)
        logger.info(f"Loaded {len(registry)} server(s) from {path}")
        return registry

    @property
    def targets(self) -> tuple[ServerTarget, ...]:
        return self._targets

    @overload
    def __getitem__(self, index: int) -> ServerTarget: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[ServerTarget]: ...

    def __getitem__(self, index):
        return self._targets[index]

    def __len__(self) -> int:
        return len(self._targets)

    def __iter__(self) -> Iterator[ServerTarget]:
        return iter(self._targets)

    def __repr__(self) -> str:
        return f"ServerRegistry({[t.name for t in self._targets]})"
