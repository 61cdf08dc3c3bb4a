"""
Game price comparison - resilient multi-store price aggregation.
"""
