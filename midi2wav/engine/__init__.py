"""Synthesis engine boundary.

The orchestration code only talks to the Protocols in ``base``; the
libtimidity binding and the directory staging area are the production
implementations.
"""
