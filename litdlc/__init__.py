"""
Lit DLC Tutorial
Drives a discreet log contract between two lit nodes over their RPC interface.
"""

__version__ = "1.0.0"
