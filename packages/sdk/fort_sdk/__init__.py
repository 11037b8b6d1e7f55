"""
Fort client SDK

Keeps a local copy of an app's authorization data (roles, groups, resources,
navs) current by priming it from a snapshot and applying resource updates
streamed by the Fort admin server.
"""

__version__ = "0.1.0"
