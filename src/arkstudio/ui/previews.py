"""Session-owned preview copies of locally selected files.

Gradio hands handlers a path inside its upload cache.  The studio copies each
selected image into its own preview directory so that the lifetime of the
copy follows the lifetime of the :class:`~arkstudio.ui.models.LocalImage`
that owns it: the copy is deleted as soon as the item is removed or replaced.
"""

import logging
import shutil
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class PreviewCache:
    """Create and release preview copies below a root directory.

    Args:
        root: Directory holding the copies.  Created on first use.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def acquire(self, source: str | Path) -> Path:
        """Copy *source* into the cache and return the copy's path."""
        source = Path(source)
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.root / f"{uuid.uuid4().hex}-{source.name}"
        shutil.copyfile(source, target)
        logger.debug(f"Acquired preview {target.name}")
        return target

    def release(self, path: str | Path) -> bool:
        """Delete a preview copy.

        Paths outside the cache root are never touched.

        Returns:
            True if a file was deleted.
        """
        target = Path(path).resolve()
        if target.parent != self.root.resolve():
            logger.warning(f"Refusing to release path outside preview cache: {path}")
            return False
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Released preview {target.name}")
        return True
