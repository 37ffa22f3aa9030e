"""
Burrow: reverse tunnel client with a pre-shared-key channel cipher.
"""

__version__ = "0.1.0"
