"""
NumPy-backed implementation of the densegrad contracts.
"""
