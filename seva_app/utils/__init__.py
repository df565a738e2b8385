"""
Shared application helpers
"""
