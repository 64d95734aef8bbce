"""
Outbox processor service: background worker and admin CLI.
"""
