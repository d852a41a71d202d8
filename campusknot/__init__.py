"""CampusKnot: a campus-restricted dating service."""

__version__ = "1.0.0"
