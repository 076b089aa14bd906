"""Tests for the error log and engine exceptions."""

from regime_compass.errors import (
    ErrorLog,
    InsufficientDataError,
    RegimeCompassError,
    record_error,
)


class TestErrorLog:

    def test_record_and_query(self):
        log = ErrorLog()
        log.record("classifier", ValueError("bad breadth"))
        log.record("risk", KeyError("SPY"))
        log.record("classifier", TypeError("none"))

        assert len(log) == 3
        assert log.count_by_stage() == {"classifier": 2, "risk": 1}
        assert log.last().error_type == "TypeError"
        assert log.last("risk").message == "'SPY'"
        assert log.last("signals") is None

    def test_trims_oldest(self):
        log = ErrorLog(max_entries=2)
        for i in range(3):
            log.record("sectors", ValueError(str(i)))
        assert [e.message for e in log.entries] == ["1", "2"]
        assert log.recorded == 3

    def test_extend_appends_and_trims(self):
        run_log = ErrorLog()
        run_log.record("b", ValueError("2"))
        run_log.record("c", ValueError("3"))
        log = ErrorLog(max_entries=2)
        log.record("a", ValueError("1"))
        log.extend(run_log.entries)
        assert [e.stage for e in log.entries] == ["b", "c"]
        assert log.recorded == 3

    def test_default_capacity(self):
        assert ErrorLog().max_entries == 100

    def test_record_error_without_log(self):
        record_error(None, "risk", ValueError("ignored"))
        log = ErrorLog()
        record_error(log, "risk", ValueError("kept"))
        assert log.count_by_stage() == {"risk": 1}

    def test_clear(self):
        log = ErrorLog()
        log.record("risk", ValueError("x"))
        log.clear()
        assert len(log) == 0
        assert log.last() is None


class TestExceptions:

    def test_insufficient_data(self):
        error = InsufficientDataError("RSI", 15, 4)
        assert isinstance(error, RegimeCompassError)
        assert isinstance(error, ValueError)
        assert error.required == 15
        assert "RSI requires at least 15 data points, got 4" in str(error)
