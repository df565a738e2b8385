"""
Service layer for volunteer operations
"""
