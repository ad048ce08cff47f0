"""
oggify: resolve catalog identifiers and download their audio into grouped folders.
"""

__version__ = "0.1.0"
