"""
Presentation layer - protocol transport and HTTP surface.
"""
