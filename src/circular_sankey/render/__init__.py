"""Rendering of laid-out Sankey graphs."""
