"""Conversion pipeline.

load_cycle parses a score and resolves what it is missing, streamer drains
the engine into one buffer, converter ties both behind ``convert``.
"""
