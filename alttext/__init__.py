"""
Alt text proxy.

Classifies media from the browser extensions, picks instructions, chooses
inline or File API transport, and relays to Gemini.
"""

__version__ = "1.2.0"
