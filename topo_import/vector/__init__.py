"""
Vector map model, geometry decomposition and SQLite persistence.
"""
