"""Heartbeat-based doubly virtual ring failure detector simulation."""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TextIO

from heartring.smpl import Simulation

_HEARTBEAT_INTERVAL = 15.0
_PROCESSING_DELAY = 5.0
_DEFAULT_MAX_TIME = 155
_RULE = "=" * 63
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class Event(IntEnum):
    """Kinds of simulation events."""

    HEARTBEAT = 1
    FAULT = 2
    PROCESSING = 3


class Status(IntEnum):
    """What one process believes about another."""

    UNKNOWN = -1
    CORRECT = 0
    SUSPECT = 1


@dataclass
class Process:
    """Local view and ring neighbours of one process."""

    facility: int
    state: list[Status]
    heartbeats: list[bool]
    last_update: list[int]
    cw_predecessor: int
    cw_successor: int
    ccw_predecessor: int
    ccw_successor: int
    rounds: int = field(default=0)


class DoublyVRing:
    """Processes exchanging heartbeats alternately in both ring directions."""

    def __init__(
        self,
        n: int,
        max_time: float = _DEFAULT_MAX_TIME,
        faults: Iterable[tuple[float, int]] = (),
        output: TextIO | None = None,
    ) -> None:
        if n < 1:
            raise ValueError(f"number of processes must be at least 1, got {n}")
        self.n = n
        self.max_time = max_time
        self._out: TextIO = output if output is not None else sys.stdout
        self.simulation = Simulation("Doubly VRing", 0, self._out)
        self.simulation.reset()
        self.simulation.streams.stream(1)
        self.processes = [self._new_process(i) for i in range(n)]

        for token in range(n):
            self.simulation.schedule(Event.HEARTBEAT, _HEARTBEAT_INTERVAL, token)
        for when, token in faults:
            if not 0 <= token < n:
                raise ValueError(f"no process {token} in a ring of {n}")
            self.simulation.schedule(Event.FAULT, when, token)

    def _new_process(self, i: int) -> Process:
        n = self.n
        state = [Status.UNKNOWN] * n
        state[i] = Status.CORRECT
        heartbeats = [False] * n
        heartbeats[i] = True
        nxt = (i + 1) % n
        prev = (i - 1) % n
        return Process(
            facility=self.simulation.facility(str(i), 1),
            state=state,
            heartbeats=heartbeats,
            last_update=[0] * n,
            cw_predecessor=prev,
            cw_successor=nxt,
            ccw_predecessor=nxt,
            ccw_successor=prev,
        )

    # ------------------------------------------------------------ helpers

    def _say(self, text: str) -> None:
        print(text, file=self._out)

    def _now(self) -> str:
        return f"{self.simulation.time():4.1f}"

    def _is_faulty(self, token: int) -> bool:
        return self.simulation.status(self.processes[token].facility)

    def _print_state(self, token: int) -> None:
        state = self.processes[token].state
        body = "".join(f" {int(s)}," for s in state[:-1])
        self._say(f"Processo {token}: State = [{body} {int(state[-1])} ]")

    def _mark_correct(self, proc: Process, token: int, j: int) -> None:
        self._say(f"Processo {token}: processei heartbeat do processo {j} no tempo {self._now()}")
        proc.state[j] = Status.CORRECT
        proc.last_update[j] = proc.rounds

    def _merge(self, proc: Process, token: int, other: Process) -> None:
        for i in range(self.n):
            if not proc.heartbeats[i] and other.last_update[i] > proc.last_update[i]:
                proc.state[i] = other.state[i]
                proc.last_update[i] = other.last_update[i]
            if i != token:
                proc.heartbeats[i] = False

    @staticmethod
    def _watch(proc: Process, clockwise: bool, j: int) -> None:
        if clockwise:
            proc.cw_predecessor = j
            proc.ccw_successor = j
        else:
            proc.ccw_predecessor = j
            proc.cw_successor = j

    # ------------------------------------------------------------- events

    def _heartbeat(self, token: int) -> None:
        if self._is_faulty(token):
            return
        proc = self.processes[token]
        target = proc.cw_successor if proc.rounds % 2 == 0 else proc.ccw_successor
        self._say(
            f"Processo {token}: estou enviando heartbeat para o processo {target} "
            f"no tempo {self._now()}"
        )
        if not self._is_faulty(target):
            self.processes[target].heartbeats[token] = True
        self.simulation.schedule(Event.PROCESSING, _PROCESSING_DELAY, token)
        self.simulation.schedule(Event.HEARTBEAT, _HEARTBEAT_INTERVAL, token)

    def _processing(self, token: int) -> bool:
        """Handle one processing step; return True if ``token`` is alone."""
        if self._is_faulty(token):
            return False
        proc = self.processes[token]
        clockwise = proc.rounds % 2 == 0
        step = -1 if clockwise else 1

        j = proc.cw_predecessor if clockwise else proc.ccw_predecessor
        if proc.heartbeats[j]:
            self._mark_correct(proc, token, j)
        else:
            proc.state[j] = Status.SUSPECT
            proc.last_update[j] = proc.rounds
            while True:
                j = (j + step) % self.n
                if proc.heartbeats[j] or j == token:
                    break
            if proc.heartbeats[j] and j != token:
                self._mark_correct(proc, token, j)

        if proc.heartbeats[j] and j != token:
            self._merge(proc, token, self.processes[j])
            self._watch(proc, clockwise, j)
        else:
            self._say(f"Processo {token}: não recebi heartbeat algum no tempo {self._now()}")
            watched = proc.cw_predecessor if clockwise else proc.ccw_predecessor
            while True:
                watched = (watched + step) % self.n
                if proc.state[watched] != Status.SUSPECT or watched == token:
                    break
            self._watch(proc, clockwise, watched)
            if watched == token:
                self._say(
                    f"Processo {token}: sou o único processo correto restante "
                    f"no tempo {self._now()}"
                )
                self._print_state(token)
                self._say("Encerrando simulação...")
                return True

        self._print_state(token)
        proc.rounds += 1
        return False

    def _fault(self, token: int) -> None:
        proc = self.processes[token]
        self.simulation.request(proc.facility, token, 0)
        self._say(
            f"Socooorro!!! Sou o processo {token}  e estou falhando no tempo {self._now()}"
        )
        for i in range(self.n):
            if i != token:
                proc.heartbeats[i] = False

    # ---------------------------------------------------------------- run

    def run(self) -> int | None:
        """Run the simulation; return the sole surviving process, if any."""
        self._say(_RULE)
        self._say("Log do Trabalho - VRing Baseado em Push - Doubly VRing")
        self._say(f"Este programa foi executado para: N={self.n} processos.")
        self._say(f"Tempo Total de Simulação = {self.max_time}")
        self._say(_RULE)

        while self.simulation.time() <= self.max_time:
            event, token = self.simulation.cause()
            if event == Event.HEARTBEAT:
                self._heartbeat(token)
            elif event == Event.PROCESSING:
                if self._processing(token):
                    return token
            elif event == Event.FAULT:
                self._fault(token)
        return None


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the ring for the process count given on the command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print("Uso correto do programa: doubly_vring <numero de processos>")
        return 1
    n = _atoi(args[0])
    if n < 1:
        print(f"{n} não é um número de processos válido.")
        return 1
    DoublyVRing(n).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())