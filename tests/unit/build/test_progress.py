"""Tests for progress callbacks and the Rich progress display."""

import io

from rich.console import Console

from bpfbuild.build.models import BuildPhase
from bpfbuild.build.progress import NullCallback, ProgressCallback, RichProgressDisplay


def _display(verbose: bool = False) -> tuple[RichProgressDisplay, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    return RichProgressDisplay(console=console, verbose=verbose), buffer


def test_callbacks_satisfy_protocol():
    assert isinstance(NullCallback(), ProgressCallback)
    assert isinstance(RichProgressDisplay(console=Console(file=io.StringIO())), ProgressCallback)


def test_null_callback_ignores_updates():
    NullCallback().on_phase("zlib", BuildPhase.BUILDING, "cc -c adler32.c")


def test_prints_phase_changes_only():
    display, buffer = _display()

    display.on_phase("zlib", BuildPhase.BUILDING, "cc -c adler32.c")
    display.on_phase("zlib", BuildPhase.BUILDING, "cc -c compress.c")
    display.on_phase("zlib", BuildPhase.INSTALLING, "ar crs libz.a")

    lines = buffer.getvalue().splitlines()
    assert len(lines) == 2
    assert "adler32.c" in lines[0]
    assert "installing" in lines[1]


def test_verbose_prints_every_step():
    display, buffer = _display(verbose=True)

    display.on_phase("zlib", BuildPhase.BUILDING, "cc -c adler32.c")
    display.on_phase("zlib", BuildPhase.BUILDING, "cc -c compress.c")

    assert "compress.c" in buffer.getvalue()


def test_summary_table():
    display, buffer = _display()
    display.on_phase("zlib", BuildPhase.DONE, "")
    display.on_phase("libelf", BuildPhase.FAILED, "`make` failed")

    table = display.render_summary()
    assert table.row_count == 2

    display.print_summary()
    text = buffer.getvalue()
    assert "Vendored builds" in text
    assert "failed" in text


def test_no_summary_without_jobs():
    display, buffer = _display()
    display.print_summary()
    assert buffer.getvalue() == ""
