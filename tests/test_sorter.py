#!/usr/bin/env python3
"""End-to-end tests: PNML file -> sorted text file."""

import sys
sys.path.insert(0, "src")

import asyncio
import logging

import pytest

from pnmlsort import PnmlSorter, SortOptions, sort_pnml
from pnmlsort.exceptions import (
    InvalidInputFileError,
    ParseError,
    PnmlIOError,
    PnmlSortError,
    StructuralError,
    UnsupportedConstructError,
)
from pnmlsort import sorter as sorter_module
from pnmlsort.pipeline import AsyncFileSink
from pnmlsort.sorter import check_is_pnml_file, output_path_for

from pnml_builders import (
    EXAMPLE, EXAMPLE_SORTED, SYMNET,
    arc, document, net, page, place, transition,
)


# ============================================================================
# Test Fixtures
# ============================================================================

class FailingFileSink(AsyncFileSink):
    """File sink whose n-th write fails, after real bytes hit the disk."""

    def __init__(self, filepath, fail_on: int = 2):
        super().__init__(filepath)
        self.fail_on = fail_on
        self.sends = 0

    async def send(self, data: bytes) -> None:
        self.sends += 1
        if self.sends >= self.fail_on:
            raise OSError("injected write failure")
        await super().send(data)
        await super().flush()


def big_document(pages: int = 20) -> str:
    return document(net(
        "n1",
        *[
            page(
                f"p{i:02d}",
                place(f"pl{i}", f"P{i}", marking=i % 3),
                transition(f"t{i}", f"T{i}"),
                arc(f"a{i}", f"pl{i}", f"t{i}", inscription=1 + i % 2),
            )
            for i in range(pages)
        ],
        name="Big",
    ))


# ============================================================================
# Paths
# ============================================================================

def test_output_path_replaces_extension(tmp_path):
    assert output_path_for(tmp_path / "model.pnml") == tmp_path / "model.sorted"


def test_check_is_pnml_file(tmp_path, write_pnml):
    assert check_is_pnml_file(write_pnml(EXAMPLE)) == tmp_path / "model.pnml"
    with pytest.raises(InvalidInputFileError, match="not found"):
        check_is_pnml_file(tmp_path / "absent.pnml")
    with pytest.raises(InvalidInputFileError, match="regular file"):
        check_is_pnml_file(tmp_path)
    with pytest.raises(InvalidInputFileError, match="PNML"):
        check_is_pnml_file(write_pnml(EXAMPLE, name="model.xml"))


# ============================================================================
# Successful runs
# ============================================================================

def test_example_is_sorted(write_pnml):
    source = write_pnml(EXAMPLE)
    dest = PnmlSorter().sort_file(source)

    assert dest == source.with_suffix(".sorted")
    assert dest.read_text(encoding="utf-8") == EXAMPLE_SORTED


def test_explicit_destination(write_pnml, tmp_path):
    dest = tmp_path / "elsewhere" / "out.txt"
    assert sort_pnml(write_pnml(EXAMPLE), dest) == dest
    assert dest.read_text(encoding="utf-8") == EXAMPLE_SORTED


def test_markings_and_inscriptions_in_output(write_pnml):
    source = write_pnml(document(net(
        "n1",
        page(
            "p1",
            place("pl0", "Empty", marking=0),
            place("pl1", "One", marking=1),
            transition("t1", "T"),
            arc("a1", "pl0", "t1", inscription=1),
            arc("a2", "pl1", "t1", inscription=2),
        ),
        name="N",
    )))
    text = PnmlSorter().sort_file(source).read_text(encoding="utf-8")

    assert "\t\t\tEmpty\n" in text
    assert "\t\t\tOne #1\n" in text
    assert "\t\t\tEmpty a1 T\n" in text
    assert "\t\t\tOne a2 T #2\n" in text


def test_symmetric_net_has_no_annotations(write_pnml):
    source = write_pnml(document(net(
        "n1",
        page("p1", place("pl1", "A", marking=3), transition("t1", "T"), arc("a1", "pl1", "t1", inscription=2)),
        name="S",
        type=SYMNET,
    )))
    text = PnmlSorter().sort_file(source).read_text(encoding="utf-8")
    assert "#" not in text
    assert "\t\t\tA a1 T\n" in text


def test_bounded_queue_gives_same_output(write_pnml, tmp_path):
    source = write_pnml(big_document())
    unbounded = PnmlSorter().sort_file(source, tmp_path / "a.sorted").read_text()
    bounded = PnmlSorter(SortOptions(queue_size=1)).sort_file(source, tmp_path / "b.sorted").read_text()
    assert unbounded == bounded
    assert unbounded.count("\tPAGE ") == 20


def test_sorting_the_same_source_twice_is_stable(write_pnml, tmp_path):
    source = write_pnml(big_document())
    first = PnmlSorter().sort_file(source, tmp_path / "1.sorted").read_bytes()
    second = PnmlSorter().sort_file(source, tmp_path / "2.sorted").read_bytes()
    assert first == second


def test_renamed_ids_with_stable_names_give_identical_output(write_pnml, tmp_path):
    original = document(net(
        "n1",
        page("p1", place("pl1", "A"), transition("t1", "B"), arc("a1", "pl1", "t1")),
        name="N1",
    ))
    reordered = document(net(
        "n1",
        page("p1", arc("a1", "x9", "y3"), transition("y3", "B"), place("x9", "A")),
        name="N1",
    ))
    left = PnmlSorter().sort_file(write_pnml(original, "left.pnml")).read_text()
    right = PnmlSorter().sort_file(write_pnml(reordered, "right.pnml")).read_text()
    assert left == right


# ============================================================================
# Failures leave nothing behind
# ============================================================================

@pytest.mark.parametrize("content,cause", [
    (document(net("n1", name="Lonely")), StructuralError),
    (document(net("n1", page("p1", '<referencePlace id="r" ref="x"/>'))), UnsupportedConstructError),
    (document(net("n1", page("p1", '<gizmo id="g"/>'))), StructuralError),
    ('<pnml><net id="n1"><page id="p1"></net>', ParseError),
    (document(net("n1", page("p1", place("pl1"), arc("a1", "pl1", "ghost")))), StructuralError),
])
def test_failures_remove_output(write_pnml, content, cause):
    source = write_pnml(content)
    with pytest.raises(PnmlSortError) as excinfo:
        PnmlSorter().sort_file(source)

    assert isinstance(excinfo.value.__cause__, cause)
    assert not output_path_for(source).exists()


def test_injected_write_failure_removes_partial_file(write_pnml):
    source = write_pnml(big_document())
    dest = output_path_for(source)
    sinks = []

    def factory(path):
        sink = FailingFileSink(path, fail_on=3)
        sinks.append(sink)
        return sink

    with pytest.raises(PnmlSortError) as excinfo:
        PnmlSorter(SortOptions(queue_size=1), sink_factory=factory).sort_file(source)

    assert isinstance(excinfo.value.__cause__, PnmlIOError)
    assert sinks[0].sends >= 3
    assert sinks[0].closed
    assert not dest.exists()


def test_invalid_input_keeps_existing_output(write_pnml):
    source = write_pnml(EXAMPLE, name="model.txt")
    stale = output_path_for(source)
    stale.write_text("previous run")

    with pytest.raises(PnmlSortError) as excinfo:
        PnmlSorter().sort_file(source)

    assert isinstance(excinfo.value.__cause__, InvalidInputFileError)
    assert stale.read_text() == "previous run"


def test_unwritable_destination(write_pnml, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    with pytest.raises(PnmlSortError) as excinfo:
        PnmlSorter().sort_file(write_pnml(EXAMPLE), blocker / "out.sorted")
    assert isinstance(excinfo.value.__cause__, PnmlIOError)


def test_failure_logs_emergency_stop(write_pnml, caplog):
    source = write_pnml(document(net("n1", name="Lonely")))
    with caplog.at_level(logging.ERROR, logger="pnmlsort"):
        with pytest.raises(PnmlSortError):
            PnmlSorter().sort_file(source)
    assert "Emergency stop" in caplog.text


@pytest.mark.asyncio
async def test_outer_cancellation_cleans_up(write_pnml):
    source = write_pnml(big_document(200))
    dest = output_path_for(source)

    task = asyncio.create_task(PnmlSorter(SortOptions(queue_size=1)).sort_file_async(source))
    # Let the sorter open its output and start the writer
    for _ in range(50):
        await asyncio.sleep(0)
        if dest.exists():
            break
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert not dest.exists()


# ============================================================================
# Batches
# ============================================================================

def test_batch_continues_after_a_failure(write_pnml):
    good = write_pnml(EXAMPLE, name="good.pnml")
    bad = write_pnml(document(net("n1", name="Lonely")), name="bad.pnml")
    other = write_pnml(EXAMPLE, name="other.pnml")

    result = PnmlSorter().sort_files([good, bad, other])

    assert not result.ok
    assert [src for src, _ in result.succeeded] == [good, other]
    assert list(result.failed) == [bad]
    assert isinstance(result.failed[bad].__cause__, StructuralError)
    assert output_path_for(good).read_text() == EXAMPLE_SORTED
    assert not output_path_for(bad).exists()
    assert result.elapsed >= 0


def test_batch_accepts_explicit_destinations(write_pnml, tmp_path):
    source = write_pnml(EXAMPLE)
    dest = tmp_path / "custom.out"
    result = PnmlSorter().sort_files([(source, dest)])
    assert result.ok
    assert result.succeeded == [(source, dest)]


def test_batch_reports_finish_status(write_pnml, caplog):
    bad = write_pnml(document(net("n1")), name="bad.pnml")
    with caplog.at_level(logging.INFO, logger="pnmlsort"):
        PnmlSorter().sort_files([bad])
    assert "Finished in error." in caplog.text
    assert "PNMLSORT_DEBUG=true" in caplog.text
    assert "Sorting PNML took" in caplog.text


# ============================================================================
# Destination safety and overlap
# ============================================================================

def test_output_onto_input_is_rejected(write_pnml):
    source = write_pnml(EXAMPLE)
    original = source.read_text(encoding="utf-8")

    with pytest.raises(PnmlSortError) as excinfo:
        PnmlSorter().sort_file(source, source)

    assert isinstance(excinfo.value.__cause__, InvalidInputFileError)
    assert source.read_text(encoding="utf-8") == original


def test_batch_job_onto_its_input_keeps_the_input(write_pnml):
    source = write_pnml(EXAMPLE)
    original = source.read_text(encoding="utf-8")

    result = PnmlSorter().sort_files([(source, source.parent / "." / source.name)])

    assert list(result.failed) == [source]
    assert source.read_text(encoding="utf-8") == original


def test_writer_overlaps_rendering_on_unbounded_channel(write_pnml, monkeypatch):
    events = []

    class RecordingChannel(sorter_module.OutputChannel):
        async def stop(self) -> None:
            events.append("stop")
            await super().stop()

    class RecordingSink(AsyncFileSink):
        async def send(self, data: bytes) -> None:
            events.append("send")
            await super().send(data)

    monkeypatch.setattr(sorter_module, "OutputChannel", RecordingChannel)
    source = write_pnml(big_document())
    dest = PnmlSorter(sink_factory=RecordingSink).sort_file(source)

    assert dest.read_text(encoding="utf-8").count("\tPAGE ") == 20
    assert events.index("send") < events.index("stop")
