"""Module __init__: shared helpers for BPSets."""
#
# PURPOSE:
# Provides small utility functions used across the codebase.
#
# KEY MODULES:
# - **async_helpers.py**: Bridging blocking SDK calls and optional coroutines into asyncio
