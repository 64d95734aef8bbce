"""
Fitcore - shared plumbing for the fitness services.

Settings, logging, and lazily created clients for the two physical
backends (relational database and Redis document store).
"""
