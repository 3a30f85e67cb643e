"""
Program-guide ingestion, channel matching and cached lookups.
"""
