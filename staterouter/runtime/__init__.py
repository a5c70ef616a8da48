"""
Runtime support: dependency injection by parameter name.
"""
