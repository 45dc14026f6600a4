"""Pipeline module - per-location orchestration and report sink."""
