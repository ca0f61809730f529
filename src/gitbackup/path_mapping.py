"""Path mapping and validation for command-line arguments."""

from __future__ import annotations

import unicodedata
from pathlib import Path

from .constants import DEFAULT_FIND_FILENAME
from .errors import StartupValidationError


def map_path_argument(
    *,
    raw_path: str | None,
    argument_name: str,
    cwd_abs: Path | None = None,
) -> Path:
    """Map a user-supplied path to an absolute path.

    ``~`` is expanded; relative paths are taken relative to ``cwd_abs``
    (the process working directory by default).
    """
    if raw_path is None:
        raise StartupValidationError(f"{argument_name} path is missing.")

    normalized_input = unicodedata.normalize("NFC", raw_path.strip())
    if normalized_input == "":
        raise StartupValidationError(f"{argument_name} path is empty.")
    if "\0" in normalized_input:
        raise StartupValidationError(f"{argument_name} contains NUL (\\0).")

    mapped = Path(normalized_input)
    if normalized_input.startswith("~"):
        try:
            mapped = mapped.expanduser()
        except RuntimeError as exc:
            raise StartupValidationError(
                f"Failed to expand user home in path for {argument_name}: {raw_path}"
            ) from exc

    if not mapped.is_absolute():
        mapped = (cwd_abs if cwd_abs is not None else Path.cwd()) / mapped

    return mapped.resolve(strict=False)


def resolve_output_dir(*, raw_path: str | None, argument_name: str) -> Path:
    dest_dir_abs = (
        map_path_argument(raw_path=raw_path, argument_name=argument_name)
        if raw_path is not None
        else Path.cwd()
    )
    if dest_dir_abs.exists() and not dest_dir_abs.is_dir():
        raise StartupValidationError(f"{argument_name} must be a directory: {dest_dir_abs}")
    if not dest_dir_abs.exists():
        try:
            dest_dir_abs.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StartupValidationError(
                f"Failed to create {argument_name} directory: {dest_dir_abs}"
            ) from exc
    return dest_dir_abs


def resolve_find_output_file(*, raw_path: str | None, argument_name: str) -> Path:
    """An existing directory (or no argument at all) means ``find.txt`` inside it."""
    output_abs = (
        map_path_argument(raw_path=raw_path, argument_name=argument_name)
        if raw_path is not None
        else Path.cwd()
    )
    if output_abs.is_dir():
        return output_abs / DEFAULT_FIND_FILENAME
    return output_abs


def resolve_list_file(*, raw_path: str | None, argument_name: str) -> Path:
    list_file_abs = map_path_argument(raw_path=raw_path, argument_name=argument_name)
    if not list_file_abs.exists():
        raise StartupValidationError(f"{argument_name} does not exist: {list_file_abs}")
    if not list_file_abs.is_file():
        raise StartupValidationError(f"{argument_name} must point to a file: {list_file_abs}")
    return list_file_abs
