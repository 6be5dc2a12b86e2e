"""
Blog core REST API: posts stored in a revisioned document database
"""

__version__ = "0.1.0"
