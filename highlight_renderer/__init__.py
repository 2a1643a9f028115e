"""
Highlight renderer.

Cuts highlight clips out of recorded meetings, optionally reformats them for
social media, burns in captions and speaker cards, and publishes the results.
"""

__version__ = "0.1.0"
