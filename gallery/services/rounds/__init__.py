"""Round domain services: the per-tick state machine and claim arbitration.

This package holds the game rules. Socket handlers and HTTP routes reach
it only through ``gallery.room.ShootingGalleryRoom``, keeping transport
concerns separated from core game mechanics.
"""
