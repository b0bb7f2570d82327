"""
Core shared types: token kinds, fixed-point amounts and the claim error hierarchy.
"""
