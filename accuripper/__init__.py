"""
accuripper: discovers radio channels on a remote catalog, harvests their
track listings into a metadata store, and downloads the referenced audio.
"""

__version__ = "0.3.0"
