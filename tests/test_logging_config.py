import logging

from core.logging_config import _DeduplicateFilter

from conftest import FakeClock


def _record(msg, *args, level=logging.INFO, name="core.lobby"):
    return logging.LogRecord(name, level, __file__, 1, msg, args, None)


def test_identical_messages_are_dropped_within_window():
    clock = FakeClock()
    flt = _DeduplicateFilter(window=5, clock=clock)

    assert flt.filter(_record("Lobby %s: %s", 1, "Working"))
    assert not flt.filter(_record("Lobby %s: %s", 1, "Working"))

    clock.advance(6)
    assert flt.filter(_record("Lobby %s: %s", 1, "Working"))


def test_different_messages_or_levels_pass():
    flt = _DeduplicateFilter(window=5, clock=FakeClock())

    assert flt.filter(_record("Lobby %s: %s", 1, "Working"))
    assert flt.filter(_record("Lobby %s: %s", 2, "Working"))
    assert flt.filter(_record("Lobby %s: %s", 1, "Working", level=logging.WARNING))
