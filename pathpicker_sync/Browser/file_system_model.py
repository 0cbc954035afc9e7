# file_system_model.py
# Description: Directory browsing state for a file picker, backed by a SelectionSyncContext for selection.
#
# Imports
import os
from pathlib import Path
from typing import List, Optional, Union
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from pathpicker_sync.Sync.engine import SelectionSyncContext
from pathpicker_sync.Sync.exceptions import InputError
from pathpicker_sync.Sync.observer_bus import Channel
from pathpicker_sync.Sync.records import Record
#
#######################################################################################################################
#
# Functions:

PathLike = Union[str, os.PathLike]


class FileSystemModel:
    """
    Tracks the directory being browsed and maps files to selection records.

    Holds no selection state of its own. Selection lives in the context's local store,
    keyed by canonical (resolved absolute) path; directory and listing changes are
    published on the context's observer bus.
    """

    def __init__(self, context: SelectionSyncContext, start_directory: Optional[PathLike] = None):
        self.context = context
        self._current_directory = self._initial_directory(
            start_directory if start_directory is not None else context.settings.start_directory
        )
        logger.info(f"FileSystemModel initialized with directory: {self._current_directory}")

    @staticmethod
    def _initial_directory(start_directory: Optional[PathLike]) -> Path:
        if start_directory:
            candidate = Path(start_directory).expanduser()
            if candidate.is_dir():
                return candidate.resolve()
            logger.warning(f"Custom start directory is invalid: {start_directory}")
        return Path.home().resolve()

    @property
    def current_directory(self) -> Path:
        return self._current_directory

    def set_current_directory(self, directory: PathLike) -> bool:
        if directory is None:
            logger.warning("Invalid directory: None")
            return False
        path = Path(directory).expanduser()
        if not path.is_dir():
            logger.warning(f"Invalid directory: {directory}")
            return False
        try:
            canonical = path.resolve(strict=True)
        except OSError as e:
            logger.error(f"Error getting canonical path for directory {directory}: {e}")
            return False

        self._current_directory = canonical
        self.context.bus.publish(Channel.DIRECTORY_CHANGED, canonical)
        self.list_files()
        return True

    def navigate_to_parent(self) -> bool:
        parent = self._current_directory.parent
        if parent == self._current_directory:
            logger.debug(f"Already at filesystem root: {self._current_directory}")
            return False
        return self.set_current_directory(parent)

    def _list_entries(self, want_directories: bool) -> Optional[List[Path]]:
        try:
            entries = [entry for entry in self._current_directory.iterdir() if entry.is_dir() == want_directories]
        except OSError as e:
            logger.warning(f"Could not list {self._current_directory}: {e}")
            return None
        return sorted(entries, key=lambda p: p.name.lower())

    def list_subdirectories(self) -> List[Path]:
        return self._list_entries(want_directories=True) or []

    def list_files(self) -> List[Path]:
        """Non-directory entries of the current directory; publishes them on the resource-list channel."""
        files = self._list_entries(want_directories=False)
        if files is None:
            return []
        self.context.bus.publish(Channel.RESOURCE_LIST_CHANGED, files)
        return files

    # --- Selection ---

    @staticmethod
    def canonical_key(path: PathLike) -> str:
        """
        Resource key for a file: its resolved absolute path.

        Raises:
            InputError: If the path does not exist or cannot be resolved.
        """
        try:
            return str(Path(path).expanduser().resolve(strict=True))
        except (OSError, RuntimeError, TypeError) as e:
            raise InputError(f"Cannot resolve a resource key for {path!r}: {e}") from e

    def toggle_file(self, path: PathLike, selected: bool) -> Record:
        return self.context.toggle(self.canonical_key(path), selected)

    def is_file_selected(self, path: PathLike) -> bool:
        try:
            return self.context.is_selected(self.canonical_key(path))
        except InputError as e:
            logger.error(f"Error checking file selection for {path}: {e}")
            return False

    def _set_all(self, selected: bool) -> List[Record]:
        records = []
        for file_path in self._list_entries(want_directories=False) or []:
            try:
                records.append(self.toggle_file(file_path, selected))
            except InputError as e:
                # Files can vanish between listing and toggling.
                logger.warning(f"Skipping {file_path}: {e}")
        logger.info(f"{'Selected' if selected else 'Deselected'} {len(records)} files in {self._current_directory}")
        return records

    def select_all(self) -> List[Record]:
        return self._set_all(True)

    def deselect_all(self) -> List[Record]:
        return self._set_all(False)

#
# End of file_system_model.py
#######################################################################################################################
