# ============================================================================
# bpsets/toolkit/__init__.py
# Toolkit Package - Rule Integration Layer
# ============================================================================
#
# PURPOSE:
# Everything a best-practice rule needs to plug into the engine.
#
# KEY MODULES:
# - **bpset.py**: BPSet base class (metadata, stats, check, fix)
# - **registry.py**: Static registration table mapping rule name → factory
# - **metadata_source.py**: Built-in and JSON metadata sources
# - **aws.py**: boto3 client factory shared by the built-in rules
#
# ============================================================================
