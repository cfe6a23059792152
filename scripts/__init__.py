# ============================================================================
# SCRIPTS
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# PURPOSE: Operational command-line entry points
# ============================================================================
