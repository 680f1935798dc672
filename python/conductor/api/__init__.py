"""HTTP surface for Conductor."""
