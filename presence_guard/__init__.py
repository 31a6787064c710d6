# presence_guard/__init__.py
"""
Presence Guard: webcam presence watcher that locks the desktop session.

Daemon that:
- samples a face detector against the webcam at a fixed cadence,
- tracks how long the subject has been absent,
- locks the session once the absence exceeds a threshold,
- rate-limits lock attempts with a cooldown and a single-flight guard.

Configured via environment variables (see settings.py).
"""

__version__ = "0.1.0"
