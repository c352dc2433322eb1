"""Avalon Build - firmware build tool for Avalon hardware targets."""

__version__ = "0.1.0"
