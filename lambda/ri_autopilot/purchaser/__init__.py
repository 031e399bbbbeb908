"""Reconciling, scaling and purchasing recommended commitments."""
