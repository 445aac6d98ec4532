"""Output rendering package"""
from .terminal import RenderOptions, TerminalRenderer, render_json

__all__ = ['RenderOptions', 'TerminalRenderer', 'render_json']
