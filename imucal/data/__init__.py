"""
Sample types, accumulation, persistence and model application
"""
