"""JSON API over a varcalc project."""
