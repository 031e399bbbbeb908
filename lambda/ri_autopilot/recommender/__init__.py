"""Fetching and normalizing Cost Explorer purchase recommendations."""
