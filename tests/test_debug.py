# tests/test_debug.py
import logging

from volute.debug import DebugObserver, LoggingObserver, ObserverGroup, ThreadStateRecorder
from volute.program import Location, Word


def test_recorder_renders_nothing_running():
    assert ThreadStateRecorder().render() == "Nothing is running."


def test_recorder_renders_each_thread():
    recorder = ThreadStateRecorder()
    recorder.update_thread_state("main", Location(2, 0), Word("l#a", 3), [])
    recorder.update_thread_state("mouse:1:1", Location(3, 6), Word("y", 1), ["1:1", "x"])
    assert recorder.render() == (
        "Thread name: main\n"
        "Instruction: l#a (3:1)\n"
        "Memory: (empty)\n"
        "\n"
        "Thread name: mouse:1:1\n"
        "Instruction: y (4:7)\n"
        "Memory: [1:1] [x]"
    )


def test_recorder_replaces_state_and_forgets_ended_threads():
    recorder = ThreadStateRecorder(keep_trace=False)
    recorder.update_thread_state("main", Location(0, 0), Word("a", 1), [])
    recorder.update_thread_state("main", Location(0, 2), Word("b", 1), ["1"])
    assert len(recorder.thread_states) == 1
    assert recorder.state_of("main")["instruction"] == "b"
    recorder.update_thread_ended("main")
    assert recorder.state_of("main") is None
    assert recorder.trace == []


def test_logging_observer(caplog):
    observer = LoggingObserver(level=logging.INFO)
    with caplog.at_level(logging.INFO, logger="volute.debug"):
        observer.update_thread_state("main", Location(0, 0), Word("h", 1), ["7"])
        observer.update_thread_ended("main")
    assert "[main] 1:1 h memory=['7']" in caplog.text
    assert "[main] ended" in caplog.text


def test_observer_group_skips_missing_observers():
    a, b = ThreadStateRecorder(), ThreadStateRecorder()
    group = ObserverGroup(a, None, b, DebugObserver())
    group.update_thread_state("main", Location(0, 0), Word("h", 1), [])
    group.update_thread_ended("main")
    assert len(group.observers) == 3
    assert [e["event"] for e in a.trace] == ["state", "ended"]
    assert a.trace == b.trace


def test_recorder_tracks_threads_sharing_a_name():
    recorder = ThreadStateRecorder()
    recorder.update_thread_state("mouse:1:1", Location(3, 0), Word("MOUSE", 5), ["1:1"], key=1)
    recorder.update_thread_state("mouse:1:1", Location(4, 0), Word("MOUSE", 5), ["1:1"], key=2)
    assert len(recorder.thread_states) == 2
    recorder.update_thread_ended("mouse:1:1", key=1)
    assert recorder.render() == (
        "Thread name: mouse:1:1\n"
        "Instruction: MOUSE (5:1)\n"
        "Memory: [1:1]"
    )
