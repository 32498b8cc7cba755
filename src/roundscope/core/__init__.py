"""Core layer: constants, config, decoder adapter, event normalization."""
