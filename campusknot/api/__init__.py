"""HTTP and WebSocket surface for CampusKnot."""
