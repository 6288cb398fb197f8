"""Layout stages for circular Sankey diagrams."""
