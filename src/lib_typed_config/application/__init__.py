"""Application layer: sources, specs, the config runtime, and their seams."""
