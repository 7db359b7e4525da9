"""
Utilities for mapping manifest names onto the local filesystem.
"""

import os
from pathlib import Path, PurePosixPath

from pathvalidate import ValidationError, validate_filepath


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def resolve_destination(local_dir: Path, relative_path: str) -> Path:
    """
    Maps a '/'-separated manifest path onto a file under local_dir.

    Raises:
        ValueError: If the path is absolute, climbs out of local_dir, or contains
        characters the platform cannot store.
    """
    posix = PurePosixPath(relative_path)
    if not relative_path or posix.is_absolute() or ".." in posix.parts:
        raise ValueError(f"Unsafe manifest path: '{relative_path}'")
    try:
        validate_filepath(relative_path, platform="auto")
    except ValidationError as e:
        raise ValueError(f"Invalid manifest path '{relative_path}': {e}") from e
    return local_dir.joinpath(*posix.parts)


def cute_path(path: Path) -> str:
    """Shortens a path for display by making it relative to the working directory."""
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path).replace(os.path.expanduser("~"), "~", 1)
