"""
catcache: caching proxy for http.cat status code images.
"""

__version__ = "0.1.0"
