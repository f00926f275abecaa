"""Application layer: session state and operation dispatch."""
