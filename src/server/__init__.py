"""
Stackrift API Server

FastAPI backend with Socket.IO for real-time match updates.
"""

from .main import app, sio
from .session import MatchSession, SessionManager, SessionHandle

__all__ = ['app', 'sio', 'MatchSession', 'SessionManager', 'SessionHandle']
