"""
Rule set sources, cache and publishing (I/O)
"""
