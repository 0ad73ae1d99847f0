import logging
import os
from pathlib import Path

from tarsisetc.defines.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DATA_DIR_ENV = 'TARSIS_ETC_DATA_DIR'


class DataFileManager:
    """
    Resolves data file names against an ordered list of search directories.
    Directories added later take precedence.
    """

    def __init__(self, search_paths=None):
        self._paths: list[Path] = []

        if search_paths is None:
            self.add_search_path(Path.cwd())
            extra_path = os.environ.get(DATA_DIR_ENV)
            if extra_path:
                self.add_search_path(extra_path)
        else:
            for path in search_paths:
                self.add_search_path(path)

    @property
    def search_paths(self) -> list[Path]:
        return list(self._paths)

    def add_search_path(self, path) -> bool:
        path = Path(path)
        if not path.exists():
            logger.warning("Cannot add search path %s: no such directory", path)
            return False

        if not path.is_dir():
            logger.warning("Cannot add search path %s: not a directory", path)
            return False

        self._paths.insert(0, path)
        return True

    def resolve(self, filename) -> Path | None:
        """Returns the first existing match for filename, or None."""
        filename = Path(filename)
        if filename.is_absolute():
            return filename if filename.exists() else None

        for directory in self._paths:
            candidate = directory / filename
            if candidate.exists():
                return candidate

        return None

    def data_file(self, filename) -> Path:
        """Like resolve, but a missing file is a configuration error."""
        path = self.resolve(filename)
        if path is None:
            searched = ', '.join(str(p) for p in self._paths) or '<none>'
            raise ConfigurationError(
                f"Data file `{filename}' not found (searched: {searched})")
        logger.debug("Resolved %s to %s", filename, path)
        return path
