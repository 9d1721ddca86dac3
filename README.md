# heartring

A small discrete-event simulation toolkit, plus a heartbeat-based failure
detector built with it.

The package contains these modules:

- `heartring.smpl`: `Simulation`, an event-list simulator. You define
  facilities, schedule and cause events, request, preempt and release
  servers, and write utilisation reports. Misuse raises `SimulationError`.
- `heartring.rand`: `RandomStreams`, fifteen seeded multiplicative
  congruential streams with uniform, integer, exponential, Erlang,
  hyperexponential and normal variates. Bad arguments raise
  `RandomArgumentError`.
- `heartring.doubly_vring`: `DoublyVRing`, a ring of processes.
  Each process alternates between sending heartbeats clockwise and
  anticlockwise. It marks silent neighbours as suspect, adopts fresher
  state from the neighbours it hears, and skips over processes already
  known to have failed.
- `heartring.cisj`: `cis(i, s)`, which computes the ordered node list
  of cluster `s` of node `i` in a hypercube-style system.

## Installation

```
pip install .
```

## Command line

Run the ring simulation for a given number of processes:

```
doubly-vring 8
```

The simulation runs for 155 time units and logs every heartbeat sent and
processed. Each time a process handles its received heartbeats it prints
its `State` vector, where `-1` means unknown, `0` correct and `1` suspect.
If a process finds that it is the only correct one left, the run stops
early.

Print cluster `s` of node `i`, or only its `j`-th member:

```
cisj 3 3
cisj 3 3 2
```

## Library use

```python
from heartring.doubly_vring import DoublyVRing

ring = DoublyVRing(8, 155, [(31.0, 3), (61.0, 4), (91.0, 6)], None)
survivor = ring.run()
```

`faults` is a sequence of `(time, process)` pairs at which processes
crash. Pass a text stream as `output` to capture the log, or `None` to
write to standard output. `run()` returns the process that found itself
the only correct one left, or `None` if the time limit was reached first.

```python
from heartring.smpl import Simulation

sim = Simulation("queue", 0, None, None)
server = sim.facility("server", 1)
sim.schedule(1, 2.0, 7)
event, customer = sim.cause()
sim.request(server, customer, 0)
sim.report()
```

## Tests

```
pip install .[test]
pytest
```