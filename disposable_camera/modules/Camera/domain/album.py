"""Find-or-create of the per-roll album in the asset store."""

from __future__ import annotations

from disposable_camera.core.logging_utils import LoggerLike, ensure_structured_logger

from ..defaults import ALBUM_NAMESPACE
from ..interfaces import AssetStore


class AlbumResolver:
    """Maps a roll name to the id of its ``"<namespace>: <name>"`` album.

    Lookup then create is not atomic: two concurrent calls for a name with no
    album yet can both create one. The asset store offers no transaction to
    close that window, so duplicates are tolerated rather than prevented.
    """

    def __init__(
        self,
        store: AssetStore,
        *,
        namespace: str = ALBUM_NAMESPACE,
        logger: LoggerLike = None,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self.logger = ensure_structured_logger(logger, component="AlbumResolver", fallback_name=__name__)

    @property
    def namespace(self) -> str:
        return self._namespace

    def album_title(self, session_name: str) -> str:
        return f"{self._namespace}: {session_name}"

    def resolve(self, session_name: str) -> str:
        title = self.album_title(session_name)
        existing = self._store.find_collection_by_title(title)
        if existing is not None:
            self.logger.debug("Found album '%s' (%s)", title, existing)
            return existing

        created = self._store.create_collection(title)
        self.logger.info("Created album '%s' (%s)", title, created)
        return created


__all__ = ["AlbumResolver"]
