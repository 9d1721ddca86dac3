"""Discrete-event simulation kernel with facilities, queues and reports."""

from __future__ import annotations

import bisect
import sys
from dataclasses import dataclass, field
from typing import ClassVar, TextIO

from heartring.rand import RandomStreams

_POOL_SIZE = 30000
_NAME_SPACE = 27680
_PRINTER_PAGE = 58
_SCREEN_PAGE = 23
_FORM_FEED = "\f"
_MODEL_NAME_LIMIT = 50
_SINGLE_SERVER_NAME_LIMIT = 17
_MULTI_SERVER_NAME_LIMIT = 14
_STREAM_COUNT = 15

_TRACE_MESSAGES = (
    "", "SCHEDULE", "CAUSE", "CANCEL", "   RESCHEDULE", "   RESUME",
    "   SUSPEND", "REQUEST", "PREEMPT", "RELEASE", "   QUEUE",
    "   DEQUEUE", "   RESERVE", "FACILITY",
)

_REPORT_TEXT = (
    "smpl SIMULATION REPORT", " MODEL: ", "TIME: ", "INTERVAL: ",
    "MEAN BUSY     MEAN QUEUE        OPERATION COUNTS",
    " FACILITY          UTIL.    ",
    " PERIOD        LENGTH     RELEASE   PREEMPT   QUEUE",
)

_EMPTY_POOL = "Empty Element Pool"
_EMPTY_NAME_SPACE = "Empty Name Space"
_LATE_FACILITY = "Facility Defined After Queue/Schedule"
_NEGATIVE_TIME = "Negative Event Time"
_EMPTY_EVENT_LIST = "Empty Event List"
_MISSING_PREEMPTED = "Preempted Token Not in Event List"
_BAD_RELEASE = "Release of Idle/Unowned Facility"


class SimulationError(RuntimeError):
    """Raised when the simulation kernel detects an unrecoverable misuse."""

    def __init__(self, message: str, time: float) -> None:
        super().__init__(f"Simulation Error at Time {time:.3f}: {message}")
        self.message = message
        self.time = time


@dataclass
class _Element:
    token: int
    event: int
    time: float = 0.0
    remaining: float = 0.0
    priority: int = 0


@dataclass
class _Server:
    token: int | None = None
    priority: int = 0
    started: float = 0.0
    releases: int = 0
    busy_time: float = 0.0


@dataclass
class _Facility:
    name: str
    servers: list[_Server]
    queue: list[_Element] = field(default_factory=list)
    busy: int = 0
    queue_area: float = 0.0
    last_change: float = 0.0
    preemptions: int = 0
    dequeues: int = 0


class Simulation:
    """Event list, facilities and reporting for one simulation model."""

    _next_stream: ClassVar[int] = 1

    def __init__(
        self,
        model_name: str = "",
        monitor: int = 0,
        output: TextIO | None = None,
        streams: RandomStreams | None = None,
    ) -> None:
        self._display: TextIO = sys.stdout
        self._output: TextIO = output if output is not None else self._display
        self._events: list[_Element] = []
        self._facilities: list[_Facility] = []
        self._next_block = 1
        self._pool_capacity: int | None = None
        self._elements_in_use = 0
        self._names_used = 0
        self._clock = 0.0
        self._start = 0.0
        self._last_trace = 0.0
        self._event = 0
        self._token = 0
        self._trace = 0
        self._lines_left = _SCREEN_PAGE
        self._model_name = self._save_name(model_name, _MODEL_NAME_LIMIT)
        self.streams = streams if streams is not None else RandomStreams()
        current = self.streams.stream(Simulation._next_stream)
        Simulation._next_stream = 1 if current + 1 > _STREAM_COUNT else current + 1
        self._monitor = monitor > 0

    # ------------------------------------------------------------ storage

    def _fail(self, message: str) -> None:
        for dest in dict.fromkeys((self._output, self._display)):
            dest.write(f"\n**** Simulation Error at Time {self._clock:.3f}\n")
            dest.write(f"     {message}\n")
        if self._output is not self._display:
            self.report()
        raise SimulationError(message, self._clock)

    def _save_name(self, name: str, limit: int) -> str:
        stored = name[:limit]
        if self._names_used + len(stored) > _NAME_SPACE:
            self._fail(_EMPTY_NAME_SPACE)
        self._names_used += len(stored) + 1
        if len(stored) == limit:
            self._names_used += 1
        return stored

    def _get_block(self, size: int) -> None:
        if self._pool_capacity is not None:
            self._fail(_LATE_FACILITY)
        self._next_block += size
        if self._next_block >= _POOL_SIZE:
            self._fail(_EMPTY_POOL)

    def _get_element(self) -> None:
        if self._pool_capacity is None:
            self._pool_capacity = _POOL_SIZE - self._next_block
        if self._elements_in_use >= self._pool_capacity:
            self._fail(_EMPTY_POOL)
        self._elements_in_use += 1

    def _put_element(self) -> None:
        self._elements_in_use -= 1

    def _enlist_event(self, element: _Element) -> None:
        index = bisect.bisect_right(self._events, element.time, key=lambda e: e.time)
        self._events.insert(index, element)

    @staticmethod
    def _enlist_queue(facility: _Facility, element: _Element) -> None:
        position = len(facility.queue)
        for index, queued in enumerate(facility.queue):
            if queued.priority < element.priority or (
                queued.priority == element.priority and element.remaining > 0.0
            ):
                position = index
                break
        facility.queue.insert(position, element)

    # ------------------------------------------------------------- models

    def reset(self) -> None:
        """Clear facility and queue measurements and restart the interval."""
        for facility in self._facilities:
            facility.dequeues = 0
            facility.preemptions = 0
            facility.queue_area = 0.0
            for server in facility.servers:
                server.releases = 0
                server.busy_time = 0.0
        self._start = self._clock

    def mname(self) -> str:
        """Return the model name."""
        return self._model_name

    def fname(self, f: int) -> str:
        """Return the name of facility ``f``."""
        return self._facilities[f].name

    # ------------------------------------------------------------- events

    def schedule(self, event: int, delay: float, token: int) -> None:
        """Schedule ``event`` for ``token`` to occur ``delay`` from now."""
        if delay < 0.0:
            self._fail(_NEGATIVE_TIME)
        self._get_element()
        self._enlist_event(_Element(token=token, event=event, time=self._clock + delay))
        if self._trace:
            self._message(1, token, "", event, 0)

    def cause(self) -> tuple[int, int]:
        """Dispatch the next event; return ``(event, token)``."""
        if not self._events:
            self._fail(_EMPTY_EVENT_LIST)
        element = self._events.pop(0)
        self._token = element.token
        self._event = element.event
        self._clock = element.time
        self._put_element()
        if self._trace:
            self._message(2, element.token, "", element.event, 0)
        return element.event, element.token

    def time(self) -> float:
        """Return the current simulation time."""
        return self._clock

    def cancel(self, event: int) -> int | None:
        """Remove the first scheduled ``event``; return its token or None."""
        for index, element in enumerate(self._events):
            if element.event == event:
                if self._trace:
                    self._message(3, element.token, "", element.event, 0)
                del self._events[index]
                self._put_element()
                return element.token
        return None

    def _suspend(self, token: int) -> _Element:
        for index, element in enumerate(self._events):
            if element.token == token:
                del self._events[index]
                if self._trace:
                    self._message(6, -1, "", element.event, 0)
                return element
        self._fail(_MISSING_PREEMPTED)
        raise AssertionError("unreachable")

    # --------------------------------------------------------- facilities

    def facility(self, name: str, servers: int) -> int:
        """Define a facility with ``servers`` servers; return its id."""
        self._get_block(servers + 2)
        limit = _MULTI_SERVER_NAME_LIMIT if servers > 1 else _SINGLE_SERVER_NAME_LIMIT
        stored = self._save_name(name, limit)
        self._facilities.append(
            _Facility(name=stored, servers=[_Server() for _ in range(servers)])
        )
        f = len(self._facilities) - 1
        if self._trace:
            self._message(13, -1, stored, f, 0)
        return f

    def _enqueue(
        self, facility: _Facility, token: int, priority: int, event: int, remaining: float
    ) -> None:
        facility.queue_area += len(facility.queue) * (self._clock - facility.last_change)
        facility.last_change = self._clock
        self._get_element()
        self._enlist_queue(
            facility,
            _Element(token=token, event=event, remaining=remaining, priority=priority),
        )

    @staticmethod
    def _reserve(facility: _Facility, server: _Server, token: int, priority: int, now: float) -> None:
        server.token = token
        server.priority = priority
        server.started = now
        facility.busy += 1

    def request(self, f: int, token: int, priority: int) -> bool:
        """Reserve a server of ``f``; return True if the token was queued."""
        facility = self._facilities[f]
        if facility.busy < len(facility.servers):
            server = next(s for s in facility.servers if s.token is None)
            self._reserve(facility, server, token, priority, self._clock)
            queued = False
        else:
            self._enqueue(facility, token, priority, self._event, 0.0)
            queued = True
        if self._trace:
            self._message(7, token, facility.name, int(queued), len(facility.queue))
        return queued

    def preempt(self, f: int, token: int, priority: int) -> bool:
        """Reserve ``f``, interrupting a lower-priority user if needed.

        Return True if the requesting token was queued instead.
        """
        facility = self._facilities[f]
        if facility.busy < len(facility.servers):
            server = next(s for s in facility.servers if s.token is None)
            if self._trace:
                self._message(8, token, facility.name, 0, 0)
        else:
            server = facility.servers[0]
            for candidate in facility.servers:
                if candidate.priority < server.priority:
                    server = candidate
            if priority <= server.priority:
                self._enqueue(facility, token, priority, self._event, 0.0)
                if self._trace:
                    self._message(7, token, facility.name, 1, len(facility.queue))
                return True
            if self._trace:
                self._message(8, token, facility.name, 2, 0)
            victim = server.token
            suspended = self._suspend(victim)
            remaining = suspended.time - self._clock
            if remaining == 0.0:
                remaining = 1.0e-99
            self._put_element()
            self._enqueue(facility, victim, server.priority, suspended.event, remaining)
            if self._trace:
                self._message(10, -1, "", victim, len(facility.queue))
                self._message(12, -1, facility.name, token, 0)
            server.releases += 1
            server.busy_time += self._clock - server.started
            facility.busy -= 1
            facility.preemptions += 1
        self._reserve(facility, server, token, priority, self._clock)
        return False

    def release(self, f: int, token: int) -> None:
        """Release the server of ``f`` held by ``token``."""
        facility = self._facilities[f]
        server = next((s for s in facility.servers if s.token == token), None)
        if server is None:
            self._fail(_BAD_RELEASE)
            return
        server.token = None
        server.releases += 1
        server.busy_time += self._clock - server.started
        facility.busy -= 1
        if self._trace:
            self._message(9, token, facility.name, 0, 0)
        if not facility.queue:
            return
        element = facility.queue.pop(0)
        facility.queue_area += (len(facility.queue) + 1) * (self._clock - facility.last_change)
        facility.dequeues += 1
        facility.last_change = self._clock
        if self._trace:
            self._message(11, -1, "", element.token, len(facility.queue))
        if element.remaining == 0.0:
            # A blocked request goes to the head of the event list so it is
            # re-initiated before anything else scheduled for this instant.
            element.time = self._clock
            self._events.insert(0, element)
            kind = 4
        else:
            self._reserve(facility, server, element.token, int(element.priority), self._clock)
            if self._trace:
                self._message(12, -1, facility.name, element.token, 0)
            element.time = self._clock + element.remaining
            self._enlist_event(element)
            kind = 5
        if self._trace:
            self._message(kind, -1, "", element.event, 0)

    def status(self, f: int) -> bool:
        """Return True when every server of ``f`` is busy."""
        facility = self._facilities[f]
        return facility.busy == len(facility.servers)

    def inq(self, f: int) -> int:
        """Return the current queue length of ``f``."""
        return len(self._facilities[f].queue)

    # ---------------------------------------------------------- measures

    def utilization(self, f: int) -> float:
        """Return the utilization of ``f`` over the measurement interval."""
        elapsed = self._clock - self._start
        if elapsed <= 0.0:
            return 0.0
        return sum(s.busy_time for s in self._facilities[f].servers) / elapsed

    def mean_busy_period(self, f: int) -> float:
        """Return the mean busy period of the servers of ``f``."""
        servers = self._facilities[f].servers
        busy = sum(s.busy_time for s in servers)
        releases = sum(s.releases for s in servers)
        return busy / releases if releases > 0 else busy

    def mean_queue_length(self, f: int) -> float:
        """Return the time-averaged queue length of ``f``."""
        elapsed = self._clock - self._start
        return self._facilities[f].queue_area / elapsed if elapsed > 0.0 else 0.0

    # ------------------------------------------------------------- trace

    def trace(self, n: int) -> None:
        """Set trace mode: 0 off, 1-3 on, 4 ends a trace line."""
        if n == 0:
            self._trace = 0
        elif n in (1, 2, 3):
            self._trace = n
            self._last_trace = -1.0
            self.newpage()
        elif n == 4:
            self._end_line()

    def _message(self, n: int, token: int, text: str, q1: int, q2: int) -> None:
        out = self._output
        if self._clock > self._last_trace:
            self._last_trace = self._clock
            out.write(f"  time {self._clock:<12.3f}  ")
        else:
            out.write(" " * 21)
        if token >= 0:
            out.write(f"--  token {token:<4d}  -- ")
        else:
            out.write("--              -- ")
        out.write(f"{_TRACE_MESSAGES[n]} {text}")
        if 1 <= n <= 6:
            out.write(f" EVENT {q1}")
        elif n in (7, 8):
            if q1 == 0:
                out.write(":  RESERVED")
            elif q1 == 1:
                out.write(f":  QUEUED  (inq = {q2})")
            elif q1 == 2:
                out.write(":  INTERRUPT")
        elif n in (10, 11):
            out.write(f" token {q1}  (inq = {q2})")
        elif n == 12:
            out.write(f" for token {q1}")
        elif n == 13:
            out.write(f":  f = {q1}")
        out.write("\n")
        self._end_line()

    def _end_line(self) -> None:
        self._lines_left -= 1
        if self._lines_left == 0:
            if self._trace == 1:
                if self._output is self._display:
                    self._lines_left = _SCREEN_PAGE
                else:
                    self.endpage()
            elif self._trace == 2:
                if self._monitor:
                    self._display.write("\n")
                    self._lines_left = _SCREEN_PAGE
                    self._pause()
                else:
                    self.endpage()
            elif self._trace == 3:
                self._lines_left = _SCREEN_PAGE
        if self._trace == 3:
            self._pause()

    @staticmethod
    def _pause() -> None:
        sys.stdin.read(1)

    # ------------------------------------------------------------ report

    def report(self) -> None:
        """Write the facility report to the current output."""
        self.newpage()
        self.reportf()
        self.endpage()

    def reportf(self) -> None:
        """Write the facility report pages."""
        if not self._facilities:
            self._output.write("\nno facilities defined:  report abandoned\n")
            return
        f: int | None = 0
        while f is not None:
            f = self._report_page(f)
            if f is not None:
                self.endpage()

    def _report_page(self, first: int) -> int | None:
        out = self._output
        out.write(f"\n{_REPORT_TEXT[0]:>51}\n\n\n")
        out.write(f"{_REPORT_TEXT[1]}{self.mname():<54}{_REPORT_TEXT[2]}{self._clock:11.3f}\n")
        out.write(f"{_REPORT_TEXT[3]:>68}{self._clock - self._start:11.3f}\n\n")
        out.write(f"{_REPORT_TEXT[4]:>75}\n")
        out.write(f"{_REPORT_TEXT[5]}{_REPORT_TEXT[6]}\n")
        self._lines_left -= 8
        f: int | None = first
        while f is not None:
            room = self._lines_left != 0
            self._lines_left -= 1
            if not room:
                break
            facility = self._facilities[f]
            releases = sum(s.releases for s in facility.servers)
            count = len(facility.servers)
            label = facility.name if count == 1 else f"{facility.name}[{count}]"
            out.write(
                f" {label:<17}{self.utilization(f):6.4f} {self.mean_busy_period(f):10.3f}"
                f" {self.mean_queue_length(f):13.3f} {releases:11d}"
                f" {facility.preemptions:9d} {facility.dequeues:7d}\n"
            )
            f = f + 1 if f + 1 < len(self._facilities) else None
        return f

    def lns(self, i: int) -> int:
        """Count ``i`` lines against the page; return the lines left."""
        self._lines_left -= i
        if self._lines_left <= 0:
            self.endpage()
        return self._lines_left

    def endpage(self) -> None:
        """Finish the current page or screen and start a new one."""
        if self._output is self._display:
            while self._lines_left > 0:
                self._output.write("\n")
                self._lines_left -= 1
            self._display.write("\n\n")
        elif self._lines_left < _PRINTER_PAGE:
            self._output.write(_FORM_FEED)
        self.newpage()

    def newpage(self) -> None:
        """Reset the line count to the top of a page or screen."""
        self._lines_left = _SCREEN_PAGE if self._output is self._display else _PRINTER_PAGE

    def sendto(self, dest: TextIO | None) -> TextIO:
        """Redirect output to ``dest`` when given; return the current output."""
        if dest is not None:
            self._output = dest
        return self._output