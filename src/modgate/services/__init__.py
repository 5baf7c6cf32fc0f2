"""Service layer: scoring, lifecycle, appeals, gating and read models."""
