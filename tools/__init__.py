"""
Command-line helpers around the Glauber coloring sampler.

Provides a random connected graph generator and a checkpoint comparison tool.
"""
