"""ava-shell: interactive command shell for an AVA node."""

__version__ = "0.3.0"
