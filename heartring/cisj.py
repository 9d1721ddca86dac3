"""Compute the c(i, s) node lists of a hypercube-clustered system."""

from __future__ import annotations

import re
import sys
from collections.abc import Sequence

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def cis(i: int, s: int) -> list[int]:
    """Return the ordered list of nodes in cluster ``s`` of node ``i``."""
    if s < 1:
        raise ValueError(f"cluster size must be at least 1, got {s}")
    first = i ^ (1 << (s - 1))
    nodes = [first]
    for j in range(1, s):
        nodes.extend(cis(first, j))
    return nodes


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Print c(i, s), or only its j-th node; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print(" Usage: cisj i s [j]")
        return 1

    i = _atoi(args[0])
    s = _atoi(args[1])
    if s < 1:
        print(f"{s} is not a valid cluster size.")
        return 1

    j = -1
    if len(args) > 2:
        j = _atoi(args[2])
        if j != -1 and not 1 <= j <= (1 << (s - 1)):
            print(f"{j} is not a valid node for a cluster size {s}.")
            return 1

    nodes = cis(i, s)
    if j != -1:
        print(nodes[j - 1])
    else:
        print("".join(f"{node} " for node in nodes))
    return 0


if __name__ == "__main__":
    sys.exit(main())