"""Podserve - self-hosted podcast feed server.

Accepts uploaded audio episodes, keeps channel-level metadata, and
serves an RSS 2.0 + iTunes syndication feed.
"""

__version__ = "0.1.0"
