# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for documents, the watch table and the document provider."""

import threading
from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

import cxv.session as session_module
from conftest import Project, set_mtime
from cxv.compile_database import load_compile_commands
from cxv.document import COMPILE_FAILED_TEXT, Document
from cxv.errors import NotFoundError
from cxv.model import ArtifactKind, CompileCommand
from cxv.parser import AddressedLine, FilterOptions, PlainLine, PlainTextParser
from cxv.provider import DocumentProvider
from cxv.watch import WatchTable


class FakeObserver:
    def __init__(self) -> None:
        self.scheduled: list[tuple[object, str]] = []
        self.unscheduled: list[object] = []
        self.started = False
        self.stopped = False
        self.joined = False

    def start(self) -> None:
        self.started = True

    def schedule(self, handler: object, path: str, recursive: bool = False) -> object:
        self.scheduled.append((handler, path))
        return object()

    def unschedule(self, watch: object) -> None:
        self.unscheduled.append(watch)

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        self.joined = True


def _provider(project: Project) -> tuple[DocumentProvider, FakeObserver]:
    observer = FakeObserver()
    provider = DocumentProvider(
        session=project.session(), observer_factory=lambda: observer
    )
    return provider, observer


def test_prv_001_request_artifact_renders_and_caches(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, observer = _provider(project)

    first = provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    second = provider.request_artifact(source, ArtifactKind.DISASSEMBLY)

    assert first == "main:\n\tmov eax, 0\n\tret"
    assert second == first
    assert len(project.runner.calls) == 1
    assert observer.started
    assert [path for _, path in observer.scheduled] == [str(project.root)]


def test_prv_002_request_unknown_source_is_not_found(project: Project) -> None:
    project.write_database([project.entry("a.c")])
    provider, _ = _provider(project)

    with pytest.raises(NotFoundError):
        provider.request_artifact(project.root / "other.c", ArtifactKind.LLVM_IR)


def test_prv_003_failed_build_renders_error_text(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    project.runner.exit_code = 1
    project.runner.stderr = "a.c:1:1: error: unknown type name 'nt'"
    provider, _ = _provider(project)

    text = provider.request_artifact(source, ArtifactKind.PREPROCESSED)

    assert text == "a.c:1:1: error: unknown type name 'nt'  failed with error code 1"


def test_prv_004_source_change_event_rebuilds_and_notifies(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, observer = _provider(project)
    changed: list[Path] = []
    provider.on_document_changed(changed.append)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    artifact = project.config.resolved_output_dir / "a@c.s"
    handler = observer.scheduled[0][0]

    project.runner.artifact_text = "main:\n\txor eax, eax\n\tret"
    set_mtime(source, 2500.0)
    handler.dispatch(FileModifiedEvent(str(source)))

    assert changed == [artifact]
    assert len(project.runner.calls) == 2
    assert "xor eax, eax" in provider.get_document(artifact).render()


def test_prv_005_unrelated_and_directory_events_are_ignored(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, observer = _provider(project)
    changed: list[Path] = []
    provider.on_document_changed(changed.append)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    handler = observer.scheduled[0][0]

    handler.dispatch(FileModifiedEvent(str(project.root / "b.c")))
    handler.dispatch(DirModifiedEvent(str(project.root)))

    assert changed == []


def test_prv_006_database_events_reload_every_subscriber(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, observer = _provider(project)
    changed: list[Path] = []
    provider.on_document_changed(changed.append)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    provider.request_artifact(source, ArtifactKind.LLVM_IR)
    handler = observer.scheduled[0][0]

    handler.dispatch(FileDeletedEvent(str(project.database)))

    assert sorted(path.name for path in changed) == ["a@c.ll", "a@c.s"]


def test_prv_007_moved_database_reload_yields_error_document(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, observer = _provider(project)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    handler = observer.scheduled[0][0]

    project.write_database([], mtime=5000.0)
    project.clock.now = 6000.0
    handler.dispatch(FileMovedEvent(str(project.root / "tmp.json"), str(project.database)))

    document = provider.get_document(project.config.resolved_output_dir / "a@c.s")
    assert not document.ok
    assert "No compile command" in document.render()


def test_prv_008_args_change_forces_reload(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, _ = _provider(project)
    changed: list[Path] = []
    unsubscribe = provider.on_document_changed(changed.append)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    artifact = project.config.resolved_output_dir / "a@c.s"

    provider.set_extra_args(["-O2"])
    provider.notify_args_changed(artifact)
    unsubscribe()
    provider.notify_args_changed(artifact)

    assert changed == [artifact]
    assert len(project.runner.calls) == 2
    assert project.runner.calls[1][0].endswith(" -O2")


def test_prv_009_dispose_releases_watches_and_is_idempotent(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, observer = _provider(project)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)

    provider.dispose()
    provider.dispose()

    assert len(observer.unscheduled) == 1
    assert observer.stopped and observer.joined
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    assert len(project.runner.calls) == 1


def test_prv_010_watch_table_tracks_subscribers_per_path(tmp_path: Path) -> None:
    observer = FakeObserver()
    seen: list[Path] = []
    table = WatchTable(on_change=seen.append, observer_factory=lambda: observer)
    source = tmp_path / "a.c"
    database = tmp_path / "compile_commands.json"

    table.watch(source, tmp_path / "a@c.s")
    table.watch(source, tmp_path / "a@c.ll")
    table.watch(database, tmp_path / "a@c.s")
    table.watch(tmp_path / "missing" / "b.c", tmp_path / "b@c.s")
    table.dispatch(source)

    assert len(table) == 3
    assert table.subscribers(database) == frozenset({tmp_path / "a@c.s"})
    assert seen == [tmp_path / "a@c.ll", tmp_path / "a@c.s"]
    assert len(observer.scheduled) == 1

    table.close()
    assert len(table) == 0


def test_prv_011_document_renders_addressed_lines(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    project.runner.artifact_text = "401000: push rbp\n  40100f: ret\nmain:"
    session = project.session()
    artifact = session.artifact_for(source, ArtifactKind.DISASSEMBLY)
    assert artifact is not None

    document = Document.build(
        artifact, session, PlainTextParser(), FilterOptions(binary=True)
    )

    assert document.lines == [
        AddressedLine(text="push rbp", address=0x401000),
        AddressedLine(text="ret", address=0x40100F),
        PlainLine(text="main:"),
    ]
    assert document.render() == "<00401000> push rbp\n<0040100f> ret\nmain:"


def test_prv_012_document_maps_source_lines_from_loc_directives(
    project: Project,
) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    project.runner.artifact_text = "\t.loc 1 3 0\n\tmov eax, 0\n\t.loc 1 4 0\n\tret"
    session = project.session()
    artifact = session.artifact_for(source, ArtifactKind.DISASSEMBLY)
    assert artifact is not None

    document = Document.build(artifact, session, PlainTextParser())

    assert document.ok
    assert document.source_mapping == {3: [0, 1], 4: [2, 3]}


def test_prv_013_failed_document_without_text_renders_placeholder(tmp_path: Path) -> None:
    assert Document.failed(tmp_path / "a@c.s", "").render() == COMPILE_FAILED_TEXT
    assert Document.failed(tmp_path / "a@c.s", "boom").render() == "boom"


def test_prv_014_request_waits_for_reload_on_observer_thread(
    project: Project, monkeypatch
) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, _ = _provider(project)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    artifact = project.config.resolved_output_dir / "a@c.s"

    loading = threading.Event()
    release = threading.Event()

    def gated_load(path: Path) -> list[CompileCommand]:
        loading.set()
        release.wait(timeout=5)
        return load_compile_commands(path)

    monkeypatch.setattr(session_module, "load_compile_commands", gated_load)
    project.write_database([project.entry("a.c")], mtime=5000.0)
    project.clock.now = 6000.0

    reloader = threading.Thread(target=provider.reload, args=(artifact,))
    reloader.start()
    assert loading.wait(timeout=5)

    results: list[object] = []

    def request() -> None:
        try:
            results.append(provider.request_artifact(source, ArtifactKind.LLVM_IR))
        except NotFoundError as exc:
            results.append(exc)

    requester = threading.Thread(target=request)
    requester.start()
    requester.join(timeout=0.2)
    release.set()
    reloader.join(timeout=5)
    requester.join(timeout=5)

    assert results == ["main:\n\tmov eax, 0\n\tret"]


def test_prv_015_created_source_event_rebuilds(project: Project) -> None:
    source = project.write_source("a.c")
    project.write_database([project.entry("a.c")])
    provider, observer = _provider(project)
    changed: list[Path] = []
    provider.on_document_changed(changed.append)
    provider.request_artifact(source, ArtifactKind.DISASSEMBLY)
    handler = observer.scheduled[0][0]

    source.unlink()
    project.write_source("a.c")
    set_mtime(source, 2500.0)
    handler.dispatch(FileCreatedEvent(str(source)))

    assert changed == [project.config.resolved_output_dir / "a@c.s"]
    assert len(project.runner.calls) == 2
