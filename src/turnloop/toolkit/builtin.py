"""Built-in file tools.

``read_file`` and ``list_files`` operate inside a working directory; paths
that resolve outside it are refused.  Failures raise ToolExecutionError with
a short message the model can act on.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import Field

from turnloop.exceptions import ToolExecutionError
from turnloop.toolkit.models import Tool
from turnloop.toolkit.registry import ToolRegistry
from turnloop.toolkit.schema import ToolInput

logger = logging.getLogger(__name__)


class ReadFileInput(ToolInput):
    path: str = Field(description="The relative path of a file in the working directory.")


class ListFilesInput(ToolInput):
    path: str = Field(
        default="",
        description=(
            "Optional relative path to list files from. "
            "Defaults to the working directory if not provided."
        ),
    )


def _resolve(workdir: Path, relative: str) -> Path:
    root = workdir.resolve()
    target = (root / relative).resolve()
    if target != root and root not in target.parents:
        raise ToolExecutionError(f"path is outside the working directory: {relative}")
    return target


def make_read_file(workdir: str | os.PathLike[str] = ".") -> Tool:
    """Build the ``read_file`` tool rooted at ``workdir``."""
    root = Path(workdir)

    def read_file(args: ReadFileInput) -> str:
        target = _resolve(root, args.path)
        try:
            return target.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ToolExecutionError(f"file not found: {args.path}") from None
        except IsADirectoryError:
            raise ToolExecutionError(f"not a file: {args.path}") from None
        except UnicodeDecodeError:
            raise ToolExecutionError(f"not a UTF-8 text file: {args.path}") from None
        except OSError as exc:
            raise ToolExecutionError(
                f"cannot read {args.path}: {exc.strerror or exc}"
            ) from None

    return Tool.build(
        "read_file",
        (
            "Read the contents of a given relative file path. Use this when you "
            "want to see what's inside a file. Do not use this with directory names."
        ),
        ReadFileInput,
        read_file,
    )


def make_list_files(workdir: str | os.PathLike[str] = ".") -> Tool:
    """Build the ``list_files`` tool rooted at ``workdir``."""
    root = Path(workdir)

    def list_files(args: ListFilesInput) -> str:
        base = _resolve(root, args.path)
        if not base.is_dir():
            raise ToolExecutionError(f"not a directory: {args.path or '.'}")
        entries: list[str] = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames.sort()
            current = Path(dirpath)
            for name in dirnames:
                entries.append((current / name).relative_to(base).as_posix() + "/")
            for name in sorted(filenames):
                entries.append((current / name).relative_to(base).as_posix())
        logger.debug("list_files %s -> %d entries", base, len(entries))
        return json.dumps(sorted(entries))

    return Tool.build(
        "list_files",
        (
            "List files and directories at a given path. If no path is provided, "
            "lists files in the working directory. Directories end with '/'."
        ),
        ListFilesInput,
        list_files,
    )


def builtin_registry(workdir: str | os.PathLike[str] = ".") -> ToolRegistry:
    """Registry holding the built-in file tools, rooted at ``workdir``."""
    return ToolRegistry([make_read_file(workdir), make_list_files(workdir)])
