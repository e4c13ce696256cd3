"""Module __init__: the BPSet execution engine."""
#
# PURPOSE:
# Runs BPSet checks and fixes and keeps their results.
#
# MODULES IN THIS PACKAGE:
# - **orchestrator.py**: BPManager, the registry and scheduler for every rule
# - **memorizer.py**: Memorizer, the per-client cache of read-only AWS calls
#
# WORKFLOW:
# Caller resets the Memorizer → BPManager runs checks concurrently → each
# rule reads AWS through its Memorizer → BPManager mirrors the results
#
