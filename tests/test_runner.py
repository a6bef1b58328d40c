# tests/test_runner.py
import json
import logging
from pathlib import Path

import pytest

from volute.buffer import TextBuffer
from volute.program import Location
from volute.receipt import validate_receipt
from volute.runner import RunOptions, Session, StopReason, run_volute_text

PROGRAMS = Path(__file__).resolve().parents[1] / "programs"


def test_end_to_end_load_add_save():
    text, receipt = run_volute_text("🐌\n\nl#a m+3 s#a h\n#a5")
    assert text == "🐌\n\nl#a m+3 s#a h\n#a8"
    assert receipt["status"] == "halted"
    assert receipt["engine"] == "volute"
    assert receipt["stepCount"] == 4
    assert receipt["program"]["entryPoint"] == "3:1"
    validate_receipt(receipt)


def test_save_into_empty_memory_stops_with_error():
    # l#a=5 finds no word starting with "#a=5", so s#a has nothing to save
    source = "🐌\nl#a=5 s#a m+3 h\n#a0"
    text, receipt = run_volute_text(source)
    assert text == source
    assert receipt["status"] == "error"
    assert receipt["error"]["type"] == "StackUnderflowError"
    assert receipt["error"]["thread"] == "main"
    assert receipt["error"]["location"] == "2:7"
    assert any(log["event"] == "fatal" for log in receipt["logs"])
    validate_receipt(receipt)


def test_program_without_header_halts_immediately(caplog):
    with caplog.at_level(logging.WARNING, logger="volute.runner"):
        session = Session("just a post").start()
    assert session.status is StopReason.HALTED
    assert session.run() is StopReason.HALTED
    assert session.machine.step_count == 0
    assert "no volute header" in caplog.text


def test_click_starts_one_thread_per_handler():
    session = Session("🐌\n\nh\nMOUSE u h\nMOUSE u h").start()
    assert session.run() is StopReason.WAITING
    started = session.click(Location(0, 0))
    assert started == ["mouse:1:1", "mouse:1:1"]
    assert [t.memory for t in session.machine.threads] == [["1:1"], ["1:1"]]
    assert [t.instruction_pointer for t in session.machine.threads] == [Location(3, 0), Location(4, 0)]
    assert session.run() is StopReason.WAITING
    receipt = session.receipt()
    assert receipt["clicks"] == [{"location": "1:1", "threads": ["mouse:1:1", "mouse:1:1"]}]
    assert receipt["clickHandlers"] == ["4:1", "5:1"]
    validate_receipt(receipt)


def test_click_handler_reads_clicked_letter():
    text, receipt = run_volute_text(
        "🐌\n\nh\nMOUSE y s#last h\n#last?",
        clicks=[Location(3, 2)],
    )
    assert text == "🐌\n\nh\nMOUSE y s#last h\n#lastU"
    assert receipt["status"] == "waiting"


def test_step_budget_times_out():
    session = Session("🐌\n\n*a J*a", RunOptions(max_steps=10)).start()
    assert session.run() is StopReason.TIMEOUT
    receipt = session.receipt()
    assert receipt["status"] == "timeout"
    assert receipt["stepCount"] == 10
    assert receipt["threads"] == [{"name": "main", "location": "3:1", "memory": []}]
    validate_receipt(receipt)


def test_stop_and_resume():
    session = Session("🐌\n\nl#n m+1 s#n h\n#n0").start()
    assert session.step()
    session.stop()
    assert session.status is StopReason.STOPPED
    assert not session.is_running()
    assert session.run() is StopReason.HALTED
    assert session.program.text().endswith("#n1")


def test_deferred_view_updates_wait_for_run_to_settle():
    view = TextBuffer("🐌\n\nl#n m+1 s#n h\n#n0")
    session = Session(view).start()
    while session.step():
        pass
    assert session.status is StopReason.HALTED
    assert view.text.endswith("#n0")
    session.run()
    assert view.text.endswith("#n1")


def test_immediate_view_updates_follow_every_step():
    view = TextBuffer((PROGRAMS / "grow.volute").read_text(encoding="utf-8"))
    session = Session(view, RunOptions(immediate_updates=True)).start()
    while session.step():
        assert view.text == session.program.text()
    assert view.text.endswith("#x hey f#x l$ p u h $hey")


def test_start_resets_the_program():
    session = Session("🐌\n\nl#n m+1 s#n h\n#n0").start()
    session.run()
    assert session.program.text().endswith("#n1")
    session.start()
    assert session.program.text().endswith("#n0")
    assert session.run() is StopReason.HALTED
    assert session.program.text().endswith("#n1")


def test_trace_can_be_left_out():
    _, receipt = run_volute_text("🐌\n\nw h", options=RunOptions(trace=False))
    assert receipt["steps"] == []
    assert receipt["status"] == "error"


def test_trace_records_states_in_order():
    _, receipt = run_volute_text("🐌\n\nl#a h\n#a1")
    assert receipt["steps"] == [
        {"event": "state", "thread": "main", "location": "3:1", "instruction": "l#a", "memory": []},
        {"event": "state", "thread": "main", "location": "3:5", "instruction": "h", "memory": ["1"]},
        {"event": "ended", "thread": "main"},
    ]


def test_error_freezes_the_session():
    session = Session("🐌\n\nu h").start()
    assert session.run() is StopReason.ERROR
    assert session.click(Location(0, 0)) == []
    assert not session.step()
    assert session.run() is StopReason.ERROR


@pytest.mark.parametrize("path", sorted(PROGRAMS.glob("*.volute")), ids=lambda p: p.name)
def test_program_goldens(path):
    golden = json.loads(Path(str(path) + ".json").read_text(encoding="utf-8"))
    clicks = [Location.decode(c) for c in golden.get("clicks", [])]
    text, receipt = run_volute_text(path.read_text(encoding="utf-8"), clicks=clicks, path=str(path))
    assert receipt["status"] == golden["status"]
    assert text == golden["text"]
    assert receipt["program"]["path"] == str(path)
    validate_receipt(receipt)


def test_debug_panel_keeps_click_threads_that_share_a_name():
    session = Session("🐌\n\nh\nMOUSE h\nMOUSE x x h").start()
    session.run()
    session.click(Location(0, 0))
    assert len(session.recorder.thread_states) == 2
    for _ in range(3):
        session.step()
    assert session.machine.is_running()
    assert session.recorder.render() == (
        "Thread name: mouse:1:1\n"
        "Instruction: x (5:7)\n"
        "Memory: [1:1]"
    )
