"""
Readers and Writers the copier pulls entities from and pushes entities to.
"""
