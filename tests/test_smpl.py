import io

import pytest

from heartring.rand import RandomStreams
from heartring.smpl import Simulation, SimulationError


@pytest.fixture
def sim():
    return Simulation("model", 0, io.StringIO())


def test_events_dispatch_in_time_order(sim):
    sim.schedule(1, 5.0, 10)
    sim.schedule(2, 1.0, 20)
    sim.schedule(3, 3.0, 30)
    assert sim.cause() == (2, 20)
    assert sim.time() == 1.0
    assert sim.cause() == (3, 30)
    assert sim.cause() == (1, 10)
    assert sim.time() == 5.0


def test_equal_times_are_first_in_first_out(sim):
    sim.schedule(1, 2.0, 7)
    sim.schedule(1, 2.0, 8)
    sim.schedule(1, 2.0, 9)
    assert [sim.cause()[1] for _ in range(3)] == [7, 8, 9]


def test_schedule_is_relative_to_clock(sim):
    sim.schedule(1, 4.0, 0)
    sim.cause()
    sim.schedule(2, 4.0, 0)
    sim.cause()
    assert sim.time() == 8.0


def test_negative_delay_raises(sim):
    with pytest.raises(SimulationError) as info:
        sim.schedule(1, -1.0, 0)
    assert info.value.message == "Negative Event Time"


def test_cause_on_empty_list_raises(sim):
    with pytest.raises(SimulationError, match="Empty Event List"):
        sim.cause()


def test_cancel_removes_first_matching_event(sim):
    sim.schedule(1, 1.0, 11)
    sim.schedule(2, 2.0, 22)
    sim.schedule(2, 3.0, 33)
    assert sim.cancel(2) == 22
    assert sim.cancel(5) is None
    assert sim.cause() == (1, 11)
    assert sim.cause() == (2, 33)


def test_request_queue_and_release_reinitiates_request(sim):
    f = sim.facility("cpu", 1)
    sim.schedule(7, 0.0, 1)
    sim.cause()
    assert sim.request(f, 1, 0) is False
    assert sim.status(f) is True
    assert sim.request(f, 2, 0) is True
    assert sim.inq(f) == 1
    sim.schedule(9, 5.0, 3)
    sim.release(f, 1)
    assert sim.inq(f) == 0
    assert sim.status(f) is False
    assert sim.cause() == (7, 2)


def test_release_of_unowned_facility_raises(sim):
    f = sim.facility("disk", 1)
    with pytest.raises(SimulationError, match="Release of Idle/Unowned Facility"):
        sim.release(f, 4)


def test_facility_after_schedule_raises(sim):
    sim.schedule(1, 1.0, 0)
    with pytest.raises(SimulationError, match="Facility Defined After Queue/Schedule"):
        sim.facility("late", 1)


def test_names_are_truncated():
    sim = Simulation("m" * 60, 0, io.StringIO())
    single = sim.facility("abcdefghijklmnopqrstuvwxyz", 1)
    multi = sim.facility("abcdefghijklmnopqrstuvwxyz", 3)
    assert sim.mname() == "m" * 50
    assert sim.fname(single) == "abcdefghijklmnopqrstuvwxyz"[:17]
    assert sim.fname(multi) == "abcdefghijklmnopqrstuvwxyz"[:14]


def test_status_with_several_servers(sim):
    f = sim.facility("pool", 2)
    assert sim.request(f, 1, 0) is False
    assert sim.status(f) is False
    assert sim.request(f, 2, 0) is False
    assert sim.status(f) is True
    sim.release(f, 1)
    assert sim.status(f) is False


def test_utilization_and_busy_period(sim):
    f = sim.facility("cpu", 1)
    sim.reset()
    sim.request(f, 1, 0)
    sim.schedule(1, 10.0, 1)
    sim.cause()
    sim.release(f, 1)
    sim.schedule(2, 10.0, 1)
    sim.cause()
    assert sim.utilization(f) == pytest.approx(0.5)
    assert sim.mean_busy_period(f) == pytest.approx(10.0)
    assert sim.mean_queue_length(f) == 0.0


def test_reset_clears_measurements(sim):
    f = sim.facility("cpu", 1)
    sim.request(f, 1, 0)
    sim.schedule(1, 4.0, 1)
    sim.cause()
    sim.release(f, 1)
    sim.reset()
    assert sim.mean_busy_period(f) == 0.0
    assert sim.utilization(f) == 0.0


def test_preempt_interrupts_lower_priority_user(sim):
    f = sim.facility("cpu", 1)
    assert sim.preempt(f, 1, 1) is False
    sim.schedule(5, 10.0, 1)
    sim.schedule(6, 4.0, 2)
    assert sim.cause() == (6, 2)
    assert sim.preempt(f, 2, 3) is False
    assert sim.inq(f) == 1
    assert sim.cancel(5) is None
    sim.schedule(8, 1.0, 2)
    sim.cause()
    sim.release(f, 2)
    assert sim.status(f) is True
    assert sim.inq(f) == 0
    assert sim.cause() == (5, 1)
    assert sim.time() == pytest.approx(11.0)
    sim.release(f, 1)
    assert sim.status(f) is False


def test_preempt_with_lower_priority_is_queued(sim):
    f = sim.facility("cpu", 1)
    sim.preempt(f, 1, 5)
    assert sim.preempt(f, 2, 5) is True
    assert sim.inq(f) == 1


def test_preempt_without_scheduled_event_raises(sim):
    f = sim.facility("cpu", 1)
    sim.request(f, 1, 0)
    with pytest.raises(SimulationError, match="Preempted Token Not in Event List"):
        sim.preempt(f, 2, 9)


def test_element_pool_exhaustion(sim):
    with pytest.raises(SimulationError, match="Empty Element Pool"):
        for _ in range(30000):
            sim.schedule(1, 0.0, 0)


def test_trace_writes_messages():
    out = io.StringIO()
    sim = Simulation("traced", 0, out)
    sim.trace(1)
    sim.schedule(3, 1.0, 4)
    sim.cause()
    text = out.getvalue()
    assert "SCHEDULE" in text
    assert "CAUSE" in text
    assert "EVENT 3" in text
    assert "token 4" in text


def test_trace_off_writes_nothing():
    out = io.StringIO()
    sim = Simulation("quiet", 0, out)
    sim.schedule(3, 1.0, 4)
    sim.cause()
    assert out.getvalue() == ""


def test_report_lists_facilities():
    out = io.StringIO()
    sim = Simulation("reported", 0, out)
    sim.facility("cpu", 1)
    sim.facility("disks", 2)
    sim.report()
    text = out.getvalue()
    assert "smpl SIMULATION REPORT" in text
    assert "reported" in text
    assert " cpu " in text
    assert "disks[2]" in text


def test_report_without_facilities():
    out = io.StringIO()
    Simulation("empty", 0, out).report()
    assert "no facilities defined:  report abandoned" in out.getvalue()


def test_lines_counting_and_page_end():
    out = io.StringIO()
    sim = Simulation("paged", 0, out)
    sim.newpage()
    top = sim.lns(0)
    after = sim.lns(8)
    assert top - after == 8
    assert sim.lns(after) == top
    assert "\f" in out.getvalue()


def test_error_is_written_to_output():
    out = io.StringIO()
    sim = Simulation("failing", 0, out)
    with pytest.raises(SimulationError) as info:
        sim.cause()
    assert info.value.time == 0.0
    assert "Simulation Error at Time" in out.getvalue()
    assert "Empty Event List" in out.getvalue()


def test_selects_a_valid_stream():
    streams = RandomStreams()
    sim = Simulation("streams", 0, io.StringIO(), streams)
    assert sim.streams is streams
    assert 1 <= streams.stream(0) <= 15
    assert 0.0 < streams.ranf() < 1.0