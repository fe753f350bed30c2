# =============================================================================
# AI Perfume Queue Client - Shared Package
# =============================================================================
# Data contracts and errors shared by the client components and their callers.
# =============================================================================
