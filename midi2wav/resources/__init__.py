"""Fetching and staging the instrument resources a score is missing."""
