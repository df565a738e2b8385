"""
Volunteer dashboard application package
"""
