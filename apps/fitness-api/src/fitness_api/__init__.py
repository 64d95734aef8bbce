"""
Fitness API - operational endpoints for the outbox engine.
"""
