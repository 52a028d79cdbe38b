"""
Line protocol spoken with clients: wire texts and the per-connection session.
"""

from hotelier.protocol.session import Action, LineChannel, SessionProtocol

__all__ = ["Action", "LineChannel", "SessionProtocol"]
