"""A small git wrapper to manage your dotfiles."""

__version__ = "0.1.0"
