"""Room domain services: drawing validation and the empty-room sweeper.

This package holds logic shared by the socket handlers and the room
models, keeping transport concerns separated from room mechanics.
"""
