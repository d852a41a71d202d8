"""REST routes for CampusKnot."""
