"""Discrete-event simulation kernel and a doubly linked heartbeat ring failure detector."""

__version__ = "0.1.0"