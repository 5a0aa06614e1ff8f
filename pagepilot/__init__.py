"""
pagepilot

Browser agent that alternates planning and action-execution passes to
accomplish a user task, with a fast path for in-page JavaScript tasks.
"""

__version__ = "0.1.0"
