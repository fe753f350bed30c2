# =============================================================================
# AI Perfume Queue Client - Client Package
# =============================================================================
# This package contains the client-side components that submit an image to
# the queue service: session token generation, asset upload, queue join,
# the event-stream interpreter, and the orchestrator tying them together.
# =============================================================================
