"""
Adapter layer for the upload server.

Contains the instance lock that guards the storage directory and the storage
controller that owns every filesystem operation against it.
"""
