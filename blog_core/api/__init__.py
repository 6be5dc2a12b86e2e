"""
Blog core REST API
"""

from .api import APIWrapper, api, create_app
