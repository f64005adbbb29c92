"""
CareBrain: care and emergency action dispatch against the care brain backend
"""

__version__ = "0.1.0"
