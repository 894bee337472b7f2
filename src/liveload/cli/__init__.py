"""
liveload command line interface.
"""
