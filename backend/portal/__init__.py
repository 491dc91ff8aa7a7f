"""
College project submission portal backend.
"""
