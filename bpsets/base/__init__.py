"""Module __init__: foundational components for BPSets."""
#
# PURPOSE:
# Marks the "base" directory as a Python package containing foundational
# components that the rest of the system depends on.
#
# WHAT'S IN THIS MODULE:
# - config.py: Application configuration (AWS session, scan limits, logging)
#
