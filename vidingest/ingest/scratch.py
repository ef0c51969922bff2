from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from vidingest.core.logging import get_logger

from .remuxer import processed_path_for

logger = get_logger(component="scratch")


@contextmanager
def scratch_file(scratch_root: Path, filename: str) -> Iterator[Path]:
    """Yield a request-private path for ``filename``.

    The file lives in a fresh directory under ``scratch_root``. On exit the
    file, its ``.processed`` sibling and the directory are removed, whether
    the body returned or raised.
    """
    scratch_root.mkdir(parents=True, exist_ok=True)
    workdir = Path(tempfile.mkdtemp(prefix="vidingest-", dir=scratch_root))
    path = workdir / filename
    logger.debug("scratch_created", path=str(path))
    try:
        yield path
    finally:
        try:
            for candidate in (path, processed_path_for(path)):
                candidate.unlink(missing_ok=True)
            shutil.rmtree(workdir)
            logger.debug("scratch_removed", path=str(workdir))
        except OSError as cleanup_error:
            logger.warning("scratch_cleanup_failed", path=str(workdir), error=str(cleanup_error))


__all__ = ["scratch_file"]
