"""
Cell Store: Networked Cell Store with Arithmetic

A small cell server built with Python asyncio. Clients exchange
length-prefixed JSON frames over raw TCP sockets to set and read
named cells, optionally computing values from one binary operation.
"""

__version__ = "1.0.0"
