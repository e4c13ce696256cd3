# ============================================================================
# bpsets/__init__.py
# Package Marker for the Best-Practice Set Auditor
# ============================================================================
#
# PURPOSE:
# BPSets audits AWS resources against a catalog of independent best-practice
# rules ("BPSets") and can remediate the resources that fail them.
#
# LAYOUT:
# - base/       configuration and logging setup
# - contracts/  data models shared by every layer (metadata, stats, records)
# - engine/     the orchestrator (BPManager) and the call Memorizer
# - toolkit/    the BPSet contract, the static rule registry, metadata
#               sources and the AWS client factory
# - rules/      the built-in rule catalog
# - utils/      async helpers
#
# ============================================================================

__version__ = "0.1.0"
