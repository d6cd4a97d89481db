"""
Globe Dots - Dotted land globe with animated connection arcs.

Two independent builds share one sphere radius:
- Landmass: Fibonacci spiral samples kept where the mask marks land
- Arcs: Cubic Bézier curves lifted above the great circle between two places

Usage:
    python src/run_globe.py --mask data/map.png --connections data/routes.csv
"""

__version__ = "1.0.0"
