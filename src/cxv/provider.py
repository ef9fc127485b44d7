# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Virtual document cache kept fresh by filesystem watches."""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from cxv.document import Document
from cxv.errors import NotFoundError
from cxv.model import ArtifactKind
from cxv.parser import AssemblyParser, FilterOptions, PlainTextParser
from cxv.session import CompileSession
from cxv.watch import WatchTable

logger = logging.getLogger(__name__)

DocumentListener = Callable[[Path], None]


class DocumentProvider:
    """Serve rendered artifact documents to a host.

    Access is serialized with a re-entrant lock since watch events arrive on
    the observer thread.
    """

    def __init__(
        self,
        session: CompileSession,
        parser: AssemblyParser | None = None,
        options: FilterOptions | None = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        """Initialize provider.

        Args:
            session: Compile session building the artifacts.
            parser: Artifact line parser; defaults to ``PlainTextParser``.
            options: Parser options.
            observer_factory: Creates the watchdog observer backing the watches.
        """
        self._session = session
        self._parser = parser or PlainTextParser()
        self._options = options or FilterOptions()
        self._watches = WatchTable(
            on_change=self.reload, observer_factory=observer_factory
        )
        self._documents: dict[Path, Document] = {}
        self._listeners: list[DocumentListener] = []
        self._lock = threading.RLock()

    def request_artifact(self, source: Path, kind: ArtifactKind) -> str:
        """Render the ``kind`` view of ``source``.

        Args:
            source: Absolute source file path.
            kind: Requested artifact kind.

        Returns:
            Rendered document text, which is the error text on a failed build.

        Raises:
            NotFoundError: If the database has no entry for ``source``.
        """
        with self._lock:
            artifact = self._session.artifact_for(source, kind)
            if artifact is None:
                raise NotFoundError(f"No compile command for {source} ({kind.value})")
            return self.get_document(artifact).render()

    def get_document(self, artifact: Path) -> Document:
        """Return the cached document for ``artifact``, building it on first use.

        Raises:
            NotFoundError: If no build record exists for ``artifact``.
        """
        with self._lock:
            document = self._documents.get(artifact)
            if document is not None:
                return document
            document = Document.build(artifact, self._session, self._parser, self._options)
            self._documents[artifact] = document
            source = self._session.source_for(artifact)
            if source is not None:
                self._watches.watch(source, artifact)
            self._watches.watch(self._session.database_path, artifact)
            return document

    def reload(self, artifact: Path) -> None:
        """Rebuild the document for ``artifact`` in place and notify listeners."""
        with self._lock:
            try:
                document = Document.build(
                    artifact, self._session, self._parser, self._options
                )
            except NotFoundError as exc:
                logger.warning(f"Reloaded artifact has no compile command (artifact={artifact})")
                document = Document.failed(artifact, str(exc))
            self._documents[artifact] = document
            listeners = list(self._listeners)
        for listener in listeners:
            listener(artifact)

    def set_extra_args(self, args: list[str]) -> None:
        with self._lock:
            self._session.set_extra_args(args)

    def notify_args_changed(self, artifact: Path) -> None:
        """Force a reload after the extra build arguments changed."""
        self.reload(artifact)

    def on_document_changed(self, listener: DocumentListener) -> Callable[[], None]:
        """Subscribe to document changes.

        Returns:
            Callable removing the subscription.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        """Release every watch and clear the cache."""
        self._watches.close()
        with self._lock:
            self._documents.clear()
            self._listeners.clear()
