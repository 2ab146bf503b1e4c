"""
e-SME: document chats mirrored into private Slack channels.
"""

__version__ = "0.1.0"
