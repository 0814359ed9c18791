"""
Visualization Package for the Heat Stress Dashboard

Renderer interface and the matplotlib figure writer.
"""

from .visualizer import Renderer, Visualizer

__all__ = ['Renderer', 'Visualizer']
