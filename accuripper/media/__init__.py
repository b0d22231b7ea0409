"""
Media Layer.

This package is responsible for opening media links as byte streams and
writing them to disk.
"""

from .downloader import ByteSource, ByteStream, HttpByteSource, write_stream

__all__ = ["ByteSource", "ByteStream", "HttpByteSource", "write_stream"]
