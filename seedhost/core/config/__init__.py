"""Configuration layer: operator options, settings resolution, merging."""
