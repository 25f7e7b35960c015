"""
Sackson - Client synchronization engine for networked Acquire.

The server owns the game. This package keeps a client in step with it:
- Decodes server messages and encodes player actions
- Reconciles partial board, corporation and wallet updates
- Drives the client phase state machine from server directives
- Validates player input against the active phase before sending
"""

__version__ = "0.1.0"
