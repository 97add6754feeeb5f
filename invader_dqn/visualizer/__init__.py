"""
Visualizer Module
=================

pygame front end for the invader game.

Classes:
    Renderer - Draws simulation snapshots (sprites, starfield, HUD, overlays)

Functions:
    intent_from_keys - Keyboard state to InputIntent
"""

from .renderer import Renderer, intent_from_keys

__all__ = ['Renderer', 'intent_from_keys']
