"""
nodeblog - headless personal blog node.

Publishes short signed posts and serves the node's time-ordered feed.
"""

__version__ = "0.1.0"
