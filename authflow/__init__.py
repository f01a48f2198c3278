"""
authflow - password login, refresh-token sessions and credential recovery.
"""

__version__ = "1.0.0"
