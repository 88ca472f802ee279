"""Calculators for Delivery Metrics."""
