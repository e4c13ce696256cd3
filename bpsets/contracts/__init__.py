"""
Shared data contracts for BPSets.

models.py holds the metadata schema every rule declares, the mutable run
statistics every rule owns and the registry record the orchestrator keeps.
"""
