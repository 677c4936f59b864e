"""Quick-edit selection modes for the roadmap canvas.

Each mode has its own immutable state variant (see modes.py); the controller
swaps variants on clicks and hands completed selections to the commit
pipeline.
"""
