"""
Rule compilation and evaluation (pure, synchronous)
"""
