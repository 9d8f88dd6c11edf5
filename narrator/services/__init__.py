"""
Conversion services.
"""
