"""Live channel package for CampusKnot."""

from campusknot.live.hub import Connection, ConnectionHub, Event

__all__ = ["Connection", "ConnectionHub", "Event"]
