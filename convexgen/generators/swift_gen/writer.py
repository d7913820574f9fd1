"""File writer for Swift client generation."""
import logging
import os
import tempfile
from typing import List, Tuple

from convexgen.core.errors import OutputWriteError
from convexgen.generators.swift_gen.types import GeneratedFile

log = logging.getLogger(__name__)


def stage_file(file: GeneratedFile) -> str:
    """Write ``file.content`` to a temp file beside its destination and return the temp path."""
    file.path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=file.path.parent, prefix=f".{file.path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(file.content)
    except BaseException:
        os.unlink(tmp)
        raise
    return tmp


def write_files(files: List[GeneratedFile]) -> None:
    """
    Write generated files to their destinations.

    Every file is staged before any destination is replaced, so a failure
    while staging leaves all existing outputs untouched.

    Args:
        files: List of GeneratedFile objects, fully rendered

    Raises:
        OutputWriteError: A destination could not be staged or replaced
    """
    staged: List[Tuple[GeneratedFile, str]] = []
    current = None
    try:
        for file in files:
            current = file
            staged.append((file, stage_file(file)))
        while staged:
            file, tmp = staged[0]
            current = file
            os.replace(tmp, file.path)
            staged.pop(0)
            log.info("Wrote %d bytes", len(file.content), extra={"stage": "WRITE_OUTPUT", "unit": file.path.name})
    except OSError as e:
        raise OutputWriteError(str(current.path), str(e)) from e
    finally:
        for _, tmp in staged:
            if os.path.exists(tmp):
                os.unlink(tmp)


def write_atomic(file: GeneratedFile) -> None:
    """Replace ``file.path`` in one step so readers never see a partial file."""
    write_files([file])
